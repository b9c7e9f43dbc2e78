import pytest

from app.services import shipping_rule_resolver as resolver


@pytest.fixture
def rules():
    return [
        {"rule_id": "nacional", "name": "Nacional", "zipcodes": ["nacional"], "precio_base": 150},
        {"rule_id": "tabasco", "name": "Tabasco", "zipcodes": ["estado_TAB"], "precio_base": 90},
        {"rule_id": "villahermosa", "name": "Villahermosa", "zipcodes": ["86610", "86000"], "precio_base": 40},
    ]


def test_exact_zipcode_beats_state_and_national(rules):
    rule = resolver.find_most_specific_rule("86610", rules)
    assert rule["rule_id"] == "villahermosa"


def test_state_match_beats_national(rules):
    rule = resolver.find_most_specific_rule("86100", rules)
    assert rule["rule_id"] == "tabasco"


def test_national_is_the_fallback(rules):
    rule = resolver.find_most_specific_rule("64000", rules)
    assert rule["rule_id"] == "nacional"


def test_unknown_prefix_skips_state_tier():
    rules = [{"rule_id": "r1", "zipcodes": ["estado_TAB"]}, {"rule_id": "r2", "zipcodes": ["nacional"]}]
    assert resolver.get_state_from_zipcode("00123") is None
    assert resolver.find_most_specific_rule("00123", rules)["rule_id"] == "r2"


def test_inactive_rules_are_ignored(rules):
    rules[2]["activo"] = False
    assert resolver.find_most_specific_rule("86610", rules)["rule_id"] == "tabasco"


def test_missing_activo_counts_as_active():
    rules = [{"rule_id": "r1", "zipcodes": ["86610"]}]
    assert resolver.find_most_specific_rule("86610", rules)["rule_id"] == "r1"


def test_returns_none_when_no_active_rule_matches(rules):
    for rule in rules:
        rule["activo"] = False
    assert resolver.find_most_specific_rule("86610", rules) is None
    assert resolver.find_most_specific_rule("64000", [{"rule_id": "r", "zipcodes": ["estado_TAB"]}]) is None


def test_first_rule_in_input_order_wins_ties():
    rules = [
        {"rule_id": "first", "zipcodes": ["estado_TAB"]},
        {"rule_id": "second", "zipcodes": ["estado_TAB", "estado_CAM"]},
    ]
    assert resolver.find_most_specific_rule("86610", rules)["rule_id"] == "first"


@pytest.mark.parametrize("rules", [None, [], "reglas", {"rule_id": "r"}])
def test_invalid_rule_containers_return_none(rules):
    assert resolver.find_most_specific_rule("86610", rules) is None


def test_state_lookup_covers_mexico_city_prefixes():
    assert resolver.get_state_from_zipcode("01000") == "CMX"
    assert resolver.get_state_from_zipcode("16000") == "CMX"
    assert resolver.get_state_from_zipcode("97000") == "YUC"
    assert resolver.zipcode_belongs_to_state("86610", "TAB")
    assert not resolver.zipcode_belongs_to_state("86610", "YUC")


def test_validate_rule_requires_coverage():
    result = resolver.validate_shipping_rule({"zipcodes": []})
    assert result["valid"] is False
    assert "al menos un código postal" in result["message"]


def test_validate_rule_rejects_national_mixed_with_other_codes():
    result = resolver.validate_shipping_rule({"zipcodes": ["nacional", "estado_TAB"]})
    assert result["valid"] is False


def test_validate_rule_rejects_duplicate_states():
    result = resolver.validate_shipping_rule({"zipcodes": ["estado_TAB", "estado_TAB"]})
    assert result == {"valid": False, "message": "Hay estados duplicados en la configuración"}


def test_validate_rule_rejects_zipcode_already_covered_by_state():
    result = resolver.validate_shipping_rule({"zipcodes": ["estado_TAB", "86610"]})
    assert result["valid"] is False
    assert "86610" in result["message"]


def test_validate_rule_does_not_compare_against_existing_rules():
    existing = [{"rule_id": "r1", "zipcodes": ["86610"]}]
    assert resolver.validate_shipping_rule({"zipcodes": ["86610"]}, existing) == {"valid": True}


def test_coverage_type_and_state_summary():
    assert resolver.get_coverage_type({"zipcodes": ["nacional"]}) == "Nacional"
    assert resolver.get_coverage_type({"zipcodes": ["estado_TAB", "86610"]}) == "Regional"
    assert resolver.get_coverage_type({"zipcodes": ["86610"]}) == "CP"
    assert resolver.get_coverage_type({}) == "No definido"
    assert resolver.format_states_list(["estado_TAB", "estado_CAM"]) == "TAB, CAM"
    assert resolver.format_states_list(["estado_TAB", "estado_CAM", "estado_YUC", "86610"]) == "TAB, CAM y 1 más"


def test_rule_shipping_cost_honours_free_shipping_threshold():
    rule = {"precio_base": 120, "envio_gratis": False, "monto_minimo_gratis": 999}
    assert resolver.calculate_rule_shipping_cost(rule, 500) == 120.0
    assert resolver.calculate_rule_shipping_cost(rule, 999) == 0.0
    assert resolver.calculate_rule_shipping_cost({"precio_base": 120, "envio_gratis": True}, 10) == 0.0


def test_rule_valid_for_address_accepts_ranges():
    rule = {"zipcodes": ["86000-86999"]}
    assert resolver.is_rule_valid_for_address(rule, "86610")
    assert not resolver.is_rule_valid_for_address(rule, "87000")
    assert resolver.is_rule_valid_for_address({"zipcodes": ["estado_TAB"]}, "00000", state="tab")


def test_filter_shippable_products_uses_assigned_rules(rules):
    products = {
        "p1": {"product_id": "p1", "shipping_rule_ids": ["villahermosa"]},
        "p2": {"product_id": "p2", "shipping_rule_ids": []},
    }
    items = [{"product_id": "p1", "quantity": 1}, {"product_id": "p2", "quantity": 2}]

    result = resolver.filter_shippable_products(items, "86610", rules, products)

    assert [item["product_id"] for item in result["eligible"]] == ["p1"]
    assert result["eligible"][0]["applicable_rules"][0]["rule_id"] == "villahermosa"
    assert result["ineligible"] == [{"product_id": "p2", "quantity": 2}]
