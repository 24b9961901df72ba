"""IRS reference values used by the Schedule C export.

Sources:
- Standard mileage rates: https://www.irs.gov/tax-professionals/standard-mileage-rates
- Self-employment tax: https://www.irs.gov/businesses/small-businesses-self-employed/self-employment-tax-social-security-and-medicare-taxes

Updated: tax year 2025
"""

from decimal import Decimal
from typing import Optional


# =============================================================================
# STANDARD MILEAGE RATES (business use, dollars per mile)
# =============================================================================

STANDARD_MILEAGE_RATES = {
    2023: Decimal("0.655"),
    2024: Decimal("0.67"),
    2025: Decimal("0.70"),
}

DEFAULT_MILEAGE_RATE = Decimal("0.67")


def get_standard_mileage_rate(tax_year: int, override: Optional[Decimal] = None) -> Decimal:
    """Return the business standard mileage rate for a tax year.

    Args:
        tax_year: The tax year being exported
        override: Rate supplied by the caller; wins over the table

    Returns:
        Dollars per business mile
    """
    if override is not None:
        return override
    return STANDARD_MILEAGE_RATES.get(tax_year, DEFAULT_MILEAGE_RATE)


# =============================================================================
# SELF-EMPLOYMENT TAX (informational estimate only)
# =============================================================================
# Net earnings subject to SE tax are 92.35% of net profit; the combined
# Social Security + Medicare rate is 15.3%. Wage-base caps are ignored.

SE_TAX_BASIS_FACTOR = Decimal("0.9235")
SE_TAX_RATE = Decimal("0.153")


# =============================================================================
# DE MINIMIS SAFE HARBOR
# =============================================================================
# Purchases at or above this amount may need depreciation treatment
# instead of an immediate expense deduction.

DE_MINIMIS_SAFE_HARBOR = Decimal("2500")
