# ==============================================
# Tests for Address Module
# ==============================================
#
# Address-like text detection and completeness of the declared
# address roles.
#
# ==============================================

from geo_quality.address.completeness import AddressCompletenessChecker, role_fields
from geo_quality.address.features import AddressFeatureDetector
from geo_quality.normalization.field_types import FieldDefinition, FieldRole, FieldType
from geo_quality.storage.base import Population
from geo_quality.storage.memory_store import MemoryStore

LEXICON = ("street", "house", "apt", "avenue", "ulitsa")


def everything(docs):
    return Population(size=len(docs), total=len(docs))


def address_fields(*roles):
    names = {
        FieldRole.REGION: "region",
        FieldRole.MUNICIPALITY: "mun",
        FieldRole.STREET: "street",
        FieldRole.HOUSE_NUMBER: "house",
    }
    return [FieldDefinition(names[r], FieldType.STRING, r) for r in roles]


class TestAddressFeatureDetector:
    def test_free_text_addresses(self):
        docs = [{"addr": f"Kondopoga, Lenina street, house {i}, apt 3"} for i in range(6)]
        docs += [{"addr": "no idea"}] * 4
        store = MemoryStore({"ds": docs})
        assert AddressFeatureDetector(store, LEXICON).detect("ds", everything(docs))

    def test_lexicon_is_case_insensitive(self):
        docs = [{"addr": "KONDOPOGA LENINA STREET HOUSE 5"}] * 2
        store = MemoryStore({"ds": docs})
        assert AddressFeatureDetector(store, LEXICON).detect("ds", everything(docs))

    def test_short_strings_are_not_candidates(self):
        docs = [{"addr": "street house"}] * 10
        store = MemoryStore({"ds": docs})
        assert AddressFeatureDetector(store, LEXICON).detect("ds", everything(docs)) is False

    def test_one_lexicon_word_is_not_enough(self):
        docs = [{"addr": "a long text about one street only"}] * 10
        store = MemoryStore({"ds": docs})
        assert not AddressFeatureDetector(store, LEXICON).detect("ds", everything(docs))

    def test_minority_key_is_dropped(self):
        docs = [{"addr": "Lenina street house 5 apt 2"}] * 4 + [{"other": 1}] * 6
        store = MemoryStore({"ds": docs})
        detector = AddressFeatureDetector(store, LEXICON)
        assert detector.candidate_keys("ds", everything(docs)) == []
        assert not detector.detect("ds", everything(docs))

    def test_empty_population(self):
        store = MemoryStore({"ds": []})
        assert not AddressFeatureDetector(store, LEXICON).detect("ds", Population(0, 0))


class TestAddressCompleteness:
    def test_role_fields_takes_first_per_role(self):
        fields = address_fields(FieldRole.REGION) + [
            FieldDefinition("region2", FieldType.STRING, FieldRole.REGION)
        ]
        assert role_fields(fields) == {FieldRole.REGION: "region"}

    def test_missing_roles_means_no_address(self):
        docs = [{"region": "Karelia", "mun": "Kondopoga"}] * 10
        store = MemoryStore({"ds": docs})
        fields = address_fields(FieldRole.REGION, FieldRole.MUNICIPALITY)
        result = AddressCompletenessChecker(store).check("ds", everything(docs), fields)
        assert result.has_address is False
        assert result.municipality_fullness is None

    def test_complete_address(self):
        docs = [{"region": "Karelia", "mun": "Kondopoga", "street": "Lenina", "house": "5"}] * 7
        docs += [{"region": "Karelia", "mun": "Kondopoga", "street": "Lenina"}] * 3
        store = MemoryStore({"ds": docs})
        fields = address_fields(*FieldRole)
        result = AddressCompletenessChecker(store).check("ds", everything(docs), fields)
        assert result.municipality_fullness == 1.0
        assert result.street_house_fullness == 0.7
        assert result.has_address

    def test_threshold_is_strict(self):
        docs = [{"region": "K", "mun": "M", "street": "S", "house": "1"}] * 6
        docs += [{"region": "K", "mun": "M"}] * 4
        store = MemoryStore({"ds": docs})
        result = AddressCompletenessChecker(store).check("ds", everything(docs), address_fields(*FieldRole))
        assert result.street_house_fullness == 0.6
        assert not result.has_address
