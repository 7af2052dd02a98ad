"""Invoice numbering, validation and export configuration."""

from pydantic import BaseModel, Field


class InvoiceConfig(BaseModel):
    """
    Invoice configuration.

    Limits are bounded so a misconfigured deployment cannot lift the bulk
    export ceiling or loosen money comparisons beyond a cent.
    """

    # Money
    money_tolerance: float = Field(
        default=0.01,
        description="Absolute tolerance when cross-checking money values",
        gt=0,
        le=0.01,
    )
    currency_symbol: str = Field(
        default="$",
        description="Symbol used when formatting amounts on PDFs",
        max_length=5,
    )

    # Export
    max_bulk_invoices: int = Field(
        default=50,
        description="Most invoices one bulk export may request",
        ge=1,
        le=50,
    )
    zip_compression_level: int = Field(
        default=6,
        description="DEFLATE level for bulk export archives",
        ge=0,
        le=9,
    )

    # PDF layout
    display_timezone: str = Field(
        default="UTC",
        description="IANA timezone for dates printed on invoices",
    )
    company_name: str = Field(
        default="Seratus Studio",
        description="Issuer name shown in the PDF header",
        max_length=100,
    )
    footer_lines: list[str] = Field(
        default_factory=lambda: [
            "Thank you for your business!",
            "Payment due within 30 days",
        ],
        description="Fixed footer text printed under the totals",
    )
