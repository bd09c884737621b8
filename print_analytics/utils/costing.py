"""
Cost and savings derivation for print jobs.

Only the primitive inputs (printing minutes, unit print price, OEM cost and
the location counters) are trusted. Every other money and quantity field on a
job is computed here so that stored records always satisfy::

    totalQuantity == sum(quantities)
    totalSavings  == totalQuantity * savingsPerProduct
"""

from typing import Any, Dict, Mapping

# Average printer draw in kW and electricity tariff per kWh
POWER_DRAW_KW = 0.3
ELECTRICITY_TARIFF = 6.0

LOCATION_FIELDS = ("bng", "sampling", "rcc", "rd", "kaa", "bom", "other")

DERIVED_FIELDS = (
    "printingTimeHrs",
    "electricityCost",
    "printCost",
    "savingsPerProduct",
    "totalQuantity",
    "totalSavings",
)


def _money(value: float) -> float:
    return round(value, 2)


def printing_hours(minutes: float) -> float:
    return round(minutes / 60, 2)


def electricity_cost(hours: float) -> float:
    return _money(hours * POWER_DRAW_KW * ELECTRICITY_TARIFF)


def total_quantity(quantities: Mapping[str, Any]) -> int:
    """Sum of the seven location counters; missing counters count as zero"""
    return sum(int(quantities.get(name) or 0) for name in LOCATION_FIELDS)


def compute_job_costs(
    printing_time_mins: float,
    print_price: float,
    oem_cost: float,
    quantities: Mapping[str, Any],
) -> Dict[str, Any]:
    """
    Derive every computed job field from the primitive inputs

    Returns:
        Mapping of camelCase derived field name to value
    """
    hours = printing_hours(printing_time_mins)
    electricity = electricity_cost(hours)
    print_cost = _money(print_price + electricity)
    savings_per_product = _money(oem_cost - print_cost)
    quantity = total_quantity(quantities)

    return {
        "printingTimeHrs": hours,
        "electricityCost": electricity,
        "printCost": print_cost,
        "savingsPerProduct": savings_per_product,
        "totalQuantity": quantity,
        "totalSavings": _money(quantity * savings_per_product),
    }


def find_mismatches(submitted: Mapping[str, Any], derived: Mapping[str, Any], tolerance: float = 0.01) -> Dict[str, Any]:
    """Return derived fields whose submitted value disagrees with the computed one"""
    mismatches = {}
    for name in DERIVED_FIELDS:
        value = submitted.get(name)
        if value is None:
            continue
        try:
            if abs(float(value) - float(derived[name])) > tolerance:
                mismatches[name] = {"submitted": value, "computed": derived[name]}
        except (TypeError, ValueError):
            mismatches[name] = {"submitted": value, "computed": derived[name]}
    return mismatches
