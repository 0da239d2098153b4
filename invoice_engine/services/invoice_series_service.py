"""
Invoice Series Service for Atomic Number Generation

Uses database-level locking (SELECT FOR UPDATE) so two invoices created at
the same time against one series can never receive the same number.

USAGE:
    from invoice_engine.services.invoice_series_service import InvoiceSeriesService

    async def create_invoice(db: AsyncSession):
        service = InvoiceSeriesService(db)
        invoice_number = await service.get_next_number(series_id)
        # Returns: INV-0001
"""
import logging
import uuid
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from invoice_engine.config import settings
from invoice_engine.models.invoice_series import InvoiceSeries, InvoiceSeriesAudit
from invoice_engine.schemas.invoice_series import InvoiceSeriesCreate
from invoice_engine.services.invoice_numbering import preview_next_invoice_number


logger = logging.getLogger(__name__)


class InvoiceSeriesService:
    """
    Service for invoice series management and number generation.

    Features:
    - Atomic number generation with database-level locking
    - One default series at a time
    - Audit logging for every number handed out
    """

    def __init__(self, db: AsyncSession, user_id: Optional[str] = None):
        """
        Initialize the service.

        Args:
            db: Async database session
            user_id: Optional user ID for audit logging
        """
        self.db = db
        self.user_id = user_id

    async def _log_audit(
        self,
        series_id: uuid.UUID,
        operation: str,
        old_number: Optional[int] = None,
        new_number: Optional[int] = None,
        invoice_number: Optional[str] = None,
    ):
        """Log an audit record for series operations."""
        audit = InvoiceSeriesAudit(
            series_id=series_id,
            operation=operation,
            old_number=old_number,
            new_number=new_number,
            invoice_number=invoice_number,
            user_id=self.user_id,
        )
        self.db.add(audit)

    async def _unset_defaults(self) -> None:
        await self.db.execute(
            update(InvoiceSeries)
            .where(InvoiceSeries.is_default == True)
            .values(is_default=False)
        )

    async def create_series(self, data: InvoiceSeriesCreate) -> InvoiceSeries:
        """
        Create a series. Its counter starts at start_with.

        The first series ever created becomes the default.
        """
        existing = await self.list_series(include_archived=True)
        is_default = data.is_default or not existing

        if is_default:
            await self._unset_defaults()

        series = InvoiceSeries(
            name=data.name,
            prefix=data.prefix,
            suffix=data.suffix,
            start_with=data.start_with,
            next_number=data.start_with,
            is_default=is_default,
            is_archived=False,
        )
        self.db.add(series)
        await self.db.flush()

        await self._log_audit(series.id, "CREATE", new_number=series.next_number)
        await self.db.flush()

        logger.info(f"Created invoice series '{series.name}' starting at {series.start_with}")
        return series

    async def get_series(self, series_id: uuid.UUID) -> InvoiceSeries:
        """
        Raises:
            ValueError: If the series does not exist
        """
        result = await self.db.execute(
            select(InvoiceSeries).where(InvoiceSeries.id == series_id)
        )
        series = result.scalar_one_or_none()
        if series is None:
            raise ValueError(f"Invoice series not found: {series_id}")
        return series

    async def get_default_series(self) -> Optional[InvoiceSeries]:
        result = await self.db.execute(
            select(InvoiceSeries).where(
                InvoiceSeries.is_default == True,
                InvoiceSeries.is_archived == False,
            )
        )
        return result.scalar_one_or_none()

    async def list_series(self, include_archived: bool = False) -> List[InvoiceSeries]:
        query = select(InvoiceSeries).order_by(InvoiceSeries.name)
        if not include_archived:
            query = query.where(InvoiceSeries.is_archived == False)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_next_number(self, series_id: Optional[uuid.UUID] = None) -> str:
        """
        Get next invoice number with atomic increment.

        Uses SELECT FOR UPDATE to prevent race conditions. Falls back to the
        default series when no series_id is given. Does not commit: the
        caller commits together with the invoice it creates.

        Returns:
            Formatted invoice number, e.g., INV-0007

        Raises:
            ValueError: If the series does not exist or is archived
        """
        query = select(InvoiceSeries).with_for_update()
        if series_id is not None:
            query = query.where(InvoiceSeries.id == series_id)
        else:
            query = query.where(InvoiceSeries.is_default == True)

        result = await self.db.execute(query)
        series = result.scalar_one_or_none()

        if series is None:
            raise ValueError(f"Invoice series not found: {series_id or 'default'}")
        if series.is_archived:
            raise ValueError(f"Invoice series '{series.name}' is archived")

        old_number = series.next_number
        invoice_number = series.consume_next_number(settings.INVOICE_NUMBER_PADDING)

        await self._log_audit(
            series.id,
            "GET_NEXT",
            old_number=old_number,
            new_number=series.next_number,
            invoice_number=invoice_number,
        )

        # Flush to persist increment inside the caller's transaction
        await self.db.flush()

        logger.info(f"Allocated invoice number {invoice_number} from series '{series.name}'")
        return invoice_number

    async def preview_next_number(self, series_id: Optional[uuid.UUID] = None) -> str:
        """Preview what the next number would be without incrementing."""
        if series_id is not None:
            series = await self.get_series(series_id)
        else:
            series = await self.get_default_series()
            if series is None:
                raise ValueError("No default invoice series configured")
        return preview_next_invoice_number(series, settings.INVOICE_NUMBER_PADDING)

    async def set_default(self, series_id: uuid.UUID) -> InvoiceSeries:
        """Make one series the default, unsetting any other."""
        series = await self.get_series(series_id)
        if series.is_archived:
            raise ValueError(f"Invoice series '{series.name}' is archived")

        await self._unset_defaults()
        series.is_default = True
        await self._log_audit(series.id, "SET_DEFAULT")
        await self.db.flush()
        await self.db.refresh(series)
        return series

    async def archive_series(self, series_id: uuid.UUID) -> InvoiceSeries:
        """
        Archive a series. Its counter is kept so numbers are never reused
        if it is restored.

        Raises:
            ValueError: If the series is the default
        """
        series = await self.get_series(series_id)
        if series.is_default:
            raise ValueError(
                "Cannot archive the default series. Please set another series as default first."
            )
        series.is_archived = True
        await self.db.flush()
        return series

    async def restore_series(self, series_id: uuid.UUID) -> InvoiceSeries:
        series = await self.get_series(series_id)
        series.is_archived = False
        await self.db.flush()
        return series

    async def seed_default_series(self) -> Optional[InvoiceSeries]:
        """Create the 'Default' series when no series exist yet."""
        existing = await self.list_series(include_archived=True)
        if existing:
            return None

        return await self.create_series(InvoiceSeriesCreate(
            name=settings.DEFAULT_SERIES_NAME,
            prefix=settings.DEFAULT_SERIES_PREFIX,
            start_with=1,
            is_default=True,
        ))
