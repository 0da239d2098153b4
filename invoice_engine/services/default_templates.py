"""Standard GST and compensation cess templates for seeding a new company."""
from typing import List, Optional

from invoice_engine.models.billing import TaxType
from invoice_engine.schemas.billing import TaxTemplate, TaxTemplateCreate


STANDARD_TAX_TEMPLATES: List[TaxTemplateCreate] = [
    # GST slabs
    TaxTemplateCreate(name="GST Exempt", rate=0, tax_type=TaxType.GST,
                      description="No GST - Exempt goods & services"),
    TaxTemplateCreate(name="GST 5%", rate=5, tax_type=TaxType.GST,
                      description="Essential goods, packaged food, footwear < ₹1000"),
    TaxTemplateCreate(name="GST 12%", rate=12, tax_type=TaxType.GST,
                      description="Processed food, computers, mobiles"),
    TaxTemplateCreate(name="GST 18%", rate=18, tax_type=TaxType.GST,
                      description="Most services, IT, telecom, restaurants", is_default=True),
    TaxTemplateCreate(name="GST 28%", rate=28, tax_type=TaxType.GST,
                      description="Luxury goods, automobiles, tobacco"),

    # Compensation cess
    TaxTemplateCreate(name="Cess 1%", rate=1, tax_type=TaxType.CESS,
                      description="Compensation cess - Small cars"),
    TaxTemplateCreate(name="Cess 3%", rate=3, tax_type=TaxType.CESS,
                      description="Compensation cess - Electric vehicles"),
    TaxTemplateCreate(name="Cess 12%", rate=12, tax_type=TaxType.CESS,
                      description="Compensation cess - Aerated drinks"),
    TaxTemplateCreate(name="Cess 15%", rate=15, tax_type=TaxType.CESS,
                      description="Compensation cess - Mid-size cars"),
    TaxTemplateCreate(name="Cess 22%", rate=22, tax_type=TaxType.CESS,
                      description="Compensation cess - Large cars/SUVs"),
]


def seed_tax_templates(existing: Optional[List[TaxTemplate]] = None) -> List[TaxTemplate]:
    """
    Return the standard templates with ids assigned in order.

    Seeding only happens for a company with no templates at all; otherwise
    the existing list is returned untouched.
    """
    if existing:
        return list(existing)
    return [
        TaxTemplate(id=index, **template.model_dump())
        for index, template in enumerate(STANDARD_TAX_TEMPLATES, start=1)
    ]


def get_default_tax_template(templates: List[TaxTemplate], tax_type: TaxType = TaxType.GST) -> Optional[TaxTemplate]:
    """The active default template of one type, if any."""
    for template in templates:
        if template.tax_type == tax_type and template.is_default and template.is_active:
            return template
    return None
