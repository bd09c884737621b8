import pytest

from print_analytics.utils import costing


def test_compute_job_costs_matches_reference_formulas():
    derived = costing.compute_job_costs(
        printing_time_mins=90,
        print_price=100,
        oem_cost=250,
        quantities={"bng": 2, "rd": 3},
    )

    assert derived["printingTimeHrs"] == pytest.approx(1.5)
    assert derived["electricityCost"] == pytest.approx(2.7)
    assert derived["printCost"] == pytest.approx(102.7)
    assert derived["savingsPerProduct"] == pytest.approx(147.3)
    assert derived["totalQuantity"] == 5
    assert derived["totalSavings"] == pytest.approx(736.5)


def test_total_savings_is_quantity_times_unit_savings():
    derived = costing.compute_job_costs(47, 12.5, 30, {"sampling": 4, "other": 3, "kaa": 1})

    assert derived["totalQuantity"] == 8
    assert derived["totalSavings"] == pytest.approx(derived["totalQuantity"] * derived["savingsPerProduct"], abs=0.01)


def test_savings_may_be_negative():
    derived = costing.compute_job_costs(600, 500, 100, {"bng": 1})

    assert derived["savingsPerProduct"] < 0
    assert derived["totalSavings"] == derived["savingsPerProduct"]


def test_total_quantity_treats_missing_and_blank_counters_as_zero():
    assert costing.total_quantity({"bng": 2, "rd": None, "bom": ""}) == 2
    assert costing.total_quantity({}) == 0


def test_printing_hours_rounds_to_two_places():
    assert costing.printing_hours(100) == 1.67


def test_find_mismatches_reports_only_disagreeing_fields():
    derived = costing.compute_job_costs(90, 100, 250, {"bng": 5})
    submitted = {
        "printingTimeHrs": 1.5,
        "totalSavings": 1.0,
        "printCost": None,
    }

    mismatches = costing.find_mismatches(submitted, derived)

    assert list(mismatches) == ["totalSavings"]
    assert mismatches["totalSavings"]["computed"] == derived["totalSavings"]


def test_find_mismatches_flags_non_numeric_values():
    derived = costing.compute_job_costs(60, 10, 20, {"bng": 1})

    assert "printCost" in costing.find_mismatches({"printCost": "abc"}, derived)
