from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from invoice_engine.database import init_db
from invoice_engine.models.billing import TaxType
from invoice_engine.schemas.billing import LineItemInput, TaxSelection


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def session() -> AsyncSession:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(engine)
    async_session = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with async_session() as sess:
        yield sess
    await engine.dispose()


@pytest.fixture
def gst18() -> TaxSelection:
    return TaxSelection(template_id=4, name="GST 18%", rate=Decimal("18"), tax_type=TaxType.GST)


@pytest.fixture
def consulting_item(gst18) -> LineItemInput:
    """2 x 500 at GST 18%: the 1180 reference invoice."""
    return LineItemInput(
        name="Consulting",
        hsn_code="998311",
        quantity=Decimal("2"),
        unit="HRS",
        rate=Decimal("500"),
        tax=gst18,
    )
