import pytest

from kaneshiro_pipeline.domain.subsidiary import DEFAULT_RULES, KINTSUGI, TAKOSUYA, SubsidiaryRules
from kaneshiro_pipeline.errors import ConfigError


class TestClassify:

    def test_explicit_subsidiary_column_wins(self, rules):
        record = {"Subsidiary": "Kintsugi", "Notes": "food kitchen restaurant"}
        assert rules.classify(record) == KINTSUGI

    def test_explicit_subsidiary_takosuya(self, rules):
        assert rules.classify({"subsidiary": "TAKOSUYA"}) == TAKOSUYA

    def test_business_column_accepts_short_name(self, rules):
        assert rules.classify({"business": "Tako truck", "Notes": "engine repair"}) == TAKOSUYA

    def test_unrecognized_explicit_value_falls_back_to_scoring(self, rules):
        assert rules.classify({"Subsidiary": "Acme", "Notes": "kitchen"}) == TAKOSUYA

    def test_keywords(self, rules):
        assert rules.classify({"Notes": "engine repair"}) == KINTSUGI
        assert rules.classify({"Notes": "restaurant kitchen"}) == TAKOSUYA

    def test_empty_record_defaults_to_kintsugi(self, rules):
        assert rules.classify({}) == KINTSUGI

    def test_tie_defaults_to_kintsugi(self, rules):
        assert rules.score({"Notes": "engine food"}) == {KINTSUGI: 2, TAKOSUYA: 2}
        assert rules.classify({"Notes": "engine food"}) == KINTSUGI

    def test_is_deterministic(self, rules):
        record = {"Customer": "Dana", "Category": "drink", "Notes": "car wash"}
        assert len({rules.classify(record) for _ in range(20)}) == 1


class TestScore:

    def test_keyword_weight(self, rules):
        assert rules.score({"Notes": "engine repair"}) == {KINTSUGI: 4, TAKOSUYA: 0}

    def test_category_counts_raw_and_normalized(self, rules):
        # "food" keyword in the text plus the food_order category
        assert rules.score({"Category": "food"}) == {KINTSUGI: 0, TAKOSUYA: 5}

    def test_role_weight(self, rules):
        assert rules.score({"Role": "Chef"}) == {KINTSUGI: 0, TAKOSUYA: 3}

    def test_role_substring_matches_several_entries(self, rules):
        # "technician" overlaps both "tech" and "technician"
        assert rules.score({"Role": "Technician"})[KINTSUGI] == 6

    def test_blank_role_and_category_do_not_score(self, rules):
        assert rules.score({"Role": "", "Category": ""}) == {KINTSUGI: 0, TAKOSUYA: 0}


class TestRuleManagement:

    def test_add_rule_changes_classification(self, rules):
        assert rules.classify({"Notes": "ramen night"}) == KINTSUGI
        rules.add_rule(TAKOSUYA, "keywords", " Ramen ")
        assert "ramen" in rules.get_rules(TAKOSUYA)["keywords"]
        assert rules.classify({"Notes": "ramen night"}) == TAKOSUYA

    def test_remove_rule(self, rules):
        rules.remove_rule(KINTSUGI, "keywords", "engine")
        assert rules.score({"Notes": "engine"})[KINTSUGI] == 0

    def test_load_config_replaces_only_listed_types(self, rules):
        rules.load_config({TAKOSUYA: {"keywords": ["sushi", "Ramen"]}})
        exported = rules.get_rules(TAKOSUYA)
        assert exported["keywords"] == ["ramen", "sushi"]
        assert exported["roles"] == sorted(DEFAULT_RULES[TAKOSUYA]["roles"])

    def test_constructor_accepts_overrides(self):
        rules = SubsidiaryRules({KINTSUGI: {"roles": ["welder"]}})
        assert rules.classify({"Role": "Welder"}) == KINTSUGI
        assert rules.get_rules(KINTSUGI)["roles"] == ["welder"]

    def test_export_and_reset(self, rules):
        rules.add_rule(KINTSUGI, "categories", "detailing")
        assert "detailing" in rules.export_config()[KINTSUGI]["categories"]
        rules.reset()
        assert rules.export_config()[KINTSUGI]["categories"] == sorted(DEFAULT_RULES[KINTSUGI]["categories"])

    def test_unknown_subsidiary_lookup(self, rules):
        assert rules.get_rules("acme") is None

    @pytest.mark.parametrize(
        "subsidiary, rule_type",
        [("acme", "keywords"), (KINTSUGI, "colors")],
    )
    def test_add_rule_rejects_unknown_targets(self, rules, subsidiary, rule_type):
        with pytest.raises(ConfigError):
            rules.add_rule(subsidiary, rule_type, "x")

    def test_load_config_rejects_non_mapping(self, rules):
        with pytest.raises(ConfigError):
            rules.load_config({KINTSUGI: ["engine"]})
