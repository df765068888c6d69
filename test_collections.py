"""Tests for collection, dictionary and byte sequence equivalency."""

from types import SimpleNamespace

from equivdiff import EquivalencyOptions, FailureType, compare
from equivdiff.collection import FAILED_ITEMS_FAST_FAIL_THRESHOLD


def person(name, age):
    return SimpleNamespace(Name=name, Age=age)


class TestCollectionOrdering:
    """Test strict and loose ordering."""

    def setup_method(self):
        self.subject = [person("John", 27), person("Jane", 24)]
        self.expectation = [person("Jane", 24), person("John", 27)]

    def test_loose_ordering_by_default(self):
        """Test that a permutation matches under the default loose ordering."""
        assert compare(self.subject, self.expectation).is_match is True

    def test_strict_ordering(self):
        """Test that a permutation fails under strict ordering, citing both indexes."""
        options = EquivalencyOptions().with_strict_ordering()
        result = compare(self.subject, self.expectation, options)
        assert result.is_match is False
        paths = [f.path for f in result.failures]
        assert paths == ["[0].Name", "[0].Age", "[1].Name", "[1].Age"]
        assert result.messages[0] == 'Expected subject[0].Name to be "Jane", but found "John".'

    def test_strict_ordering_for_path(self):
        """Test strict ordering limited to one member."""
        options = EquivalencyOptions().with_strict_ordering("Items")
        subject = SimpleNamespace(Items=[1, 2], Tags=[1, 2])
        expectation = SimpleNamespace(Items=[2, 1], Tags=[2, 1])
        result = compare(subject, expectation, options)
        assert {f.path for f in result.failures} == {"Items[0]", "Items[1]"}

    def test_without_strict_ordering(self):
        """Test that strict ordering can be turned off again."""
        options = EquivalencyOptions().with_strict_ordering().without_strict_ordering()
        assert compare([1, 2], [2, 1], options).is_match is True

    def test_permutations_of_scalars(self):
        """Test permutations of scalars in both modes."""
        assert compare([3, 1, 2], [1, 2, 3]).is_match is True
        options = EquivalencyOptions().with_strict_ordering()
        assert compare([3, 1, 2], [1, 2, 3], options).is_match is False
        assert compare([1, 2, 3], [1, 2, 3], options).is_match is True

    def test_sets_are_always_loose(self):
        """Test that sets ignore strict ordering."""
        options = EquivalencyOptions().with_strict_ordering()
        assert compare([3, 2, 1], {1, 2, 3}, options).is_match is True

    def test_tuples_and_generators(self):
        """Test that any iterable is a collection."""
        assert compare((x for x in [1, 2]), (1, 2)).is_match is True


class TestCollectionMatching:
    """Test closest match diagnostics and duplicates."""

    def test_duplicates_must_match(self):
        """Test that multiplicity is taken into account."""
        assert compare([1, 1, 2], [2, 1, 1]).is_match is True

        result = compare([1, 1, 2], [1, 2, 2])
        assert result.messages == ["Expected subject[2] to be 2, but found 1."]

    def test_closest_match_is_reported(self):
        """Test that the failure points at the closest subject item."""
        subject = [person("John", 27), person("Jane", 24)]
        expectation = [person("Jane", 24), person("John", 28)]
        result = compare(subject, expectation)
        assert result.messages == ["Expected subject[1].Age to be 28, but found 27."]

    def test_closest_match_prefers_same_index(self):
        """Test that ties are broken by keeping the original position."""
        subject = [person("A", 1), person("B", 1)]
        expectation = [person("A", 2), person("B", 2)]
        result = compare(subject, expectation)
        assert [f.path for f in result.failures] == ["[0].Age", "[1].Age"]

    def test_fast_fail(self):
        """Test that loose matching stops after too many failed items."""
        count = FAILED_ITEMS_FAST_FAIL_THRESHOLD + 5
        result = compare(list(range(count)), list(range(100, 100 + count)))
        assert len(result.failures) == FAILED_ITEMS_FAST_FAIL_THRESHOLD

    def test_fast_fail_strict(self):
        """Test that strict ordering stops after too many failed items."""
        count = FAILED_ITEMS_FAST_FAIL_THRESHOLD + 5
        options = EquivalencyOptions().with_strict_ordering()
        result = compare(list(range(count)), list(range(100, 100 + count)), options)
        assert len(result.failures) == FAILED_ITEMS_FAST_FAIL_THRESHOLD

    def test_members_compared_counts_committed_pairings(self):
        """Test that trial pairings of loose matching are not counted."""
        result = compare([1, 2, 3], [3, 1, 2])
        assert result.is_match is True
        assert result.summary.members_compared == 3

        result = compare([1, 2, 3], [1, 2, 4])
        assert result.summary.members_compared == 3


class TestCollectionShape:
    """Test size and type checks."""

    def test_size_mismatch(self):
        """Test that a size mismatch fails without element comparison."""
        result = compare([1, 2], [1, 2, 3])
        assert len(result.failures) == 1
        assert result.failures[0].type == FailureType.COLLECTION_SIZE
        assert result.messages[0] == "Expected subject to be a collection with 3 item(s), but found 2: {1, 2}."

    def test_not_enumerable(self):
        """Test that a scalar where a collection is expected fails once."""
        result = compare(SimpleNamespace(Items=5), SimpleNamespace(Items=[1]))
        assert result.messages == ["Expected member Items to be list, but found int 5."]
        assert result.failures[0].type == FailureType.COLLECTION_TYPE

    def test_dictionary_where_collection_expected(self):
        """Test that a dictionary is not a collection of items."""
        result = compare({"a": 1}, [1])
        assert result.failures[0].type == FailureType.DICTIONARY_TYPE
        assert "non-dictionary" in result.messages[0]

    def test_empty_collections(self):
        """Test that two empty collections are equivalent."""
        assert compare([], ()).is_match is True


class TestDictionaries:
    """Test key based pairing."""

    def test_key_order_is_irrelevant(self):
        """Test that dictionaries are paired by key."""
        assert compare({"a": 1, "b": 2}, {"b": 2, "a": 1}).is_match is True

    def test_missing_key(self):
        """Test that a key the subject lacks is a failure."""
        result = compare({"a": 1}, {"a": 1, "b": 2})
        assert result.failures[0].type == FailureType.MISSING_KEY
        assert result.messages == [
            'Expected subject to be a dictionary with 2 item(s), but it misses key(s) {"b"}.'
        ]

    def test_additional_key(self):
        """Test that an extra subject key is a failure unless missing members are excluded."""
        result = compare({"a": 1, "b": 2}, {"a": 1})
        assert result.failures[0].type == FailureType.DICTIONARY_KEYS
        assert "has additional key(s)" in result.messages[0]

        options = EquivalencyOptions().excluding_missing_members()
        assert compare({"a": 1, "b": 2}, {"a": 1}, options).is_match is True

    def test_missing_and_additional_keys(self):
        """Test that both directions are reported together."""
        result = compare({"a": 1, "c": 3}, {"a": 1, "b": 2})
        assert result.messages == [
            'Expected subject to be a dictionary with 2 item(s), '
            'but it misses key(s) {"b"} and has additional key(s) {"c"}.'
        ]

    def test_values_are_compared_structurally(self):
        """Test that values of matching keys are compared with a key path."""
        result = compare({"a": {"x": 1}, 5: [1]}, {"a": {"x": 2}, 5: [1]})
        assert [f.path for f in result.failures] == ["a.x"]

    def test_non_identifier_keys(self):
        """Test the path of keys that are not identifiers."""
        result = compare({"first name": "a"}, {"first name": "b"})
        assert result.failures[0].path == "['first name']"

    def test_non_dictionary_subject(self):
        """Test that a non-dictionary subject against a dictionary fails."""
        result = compare([1], {"a": 1})
        assert result.failures[0].type == FailureType.DICTIONARY_TYPE
        assert result.messages[0].startswith("Expected subject to be a dictionary, but found a non-dictionary list")

    def test_dictionary_subject_against_scalar(self):
        """Test that a dictionary cannot stand in for a single value."""
        result = compare({"a": 1}, 1)
        assert result.messages == [
            "Subject is a dictionary and cannot be compared with a non-dictionary type."
        ]

    def test_object_against_dictionary(self):
        """Test that a dictionary can describe the shape of an object."""
        assert compare(person("John", 36), {"Name": "John", "Age": 36}).is_match is True
        result = compare(person("John", 36), {"Name": "John"})
        assert "has additional key(s)" in result.messages[0]

    def test_dictionary_against_object(self):
        """Test that an object expectation can be met by a dictionary."""
        assert compare({"Name": "John", "Age": 36}, person("John", 36)).is_match is True

    def test_excluding_keys(self):
        """Test that excluded keys are neither compared nor missing."""
        options = EquivalencyOptions().excluding("b")
        assert compare({"a": 1, "b": 2}, {"a": 1}, options).is_match is True
        assert compare({"a": 1}, {"a": 1, "b": 2}, options).is_match is True


class TestByteSequences:
    """Test byte sequences."""

    def test_bytes_are_always_strict(self):
        """Test that byte order matters even with loose ordering."""
        result = compare(b"\x01\x02\x03", b"\x03\x02\x01")
        assert result.is_match is False
        assert "differs at index 0" in result.messages[0]

    def test_equal_bytes(self):
        """Test that equal byte sequences of different types match."""
        assert compare(bytearray(b"abc"), b"abc").is_match is True

    def test_list_against_bytes(self):
        """Test that a list of ints is compared byte by byte."""
        assert compare([1, 2, 3], b"\x01\x02\x03").is_match is True
        assert compare([1, 2, 4], b"\x01\x02\x03").is_match is False

    def test_byte_size_mismatch(self):
        """Test that byte sequences of different length fail on size."""
        result = compare(b"\x01", b"\x01\x02")
        assert result.failures[0].type == FailureType.COLLECTION_SIZE

    def test_bytes_against_list(self):
        """Test that a byte sequence subject is compared in order against a list."""
        result = compare(b"\x01\x02\x03", [3, 2, 1])
        assert result.is_match is False
        assert [f.path for f in result.failures] == ["[0]", "[2]"]
        assert compare(b"\x01\x02\x03", [1, 2, 3]).is_match is True

    def test_bytes_against_set(self):
        """Test that a set expectation still ignores the order of a byte sequence."""
        assert compare(b"\x01\x02", {2, 1}).is_match is True
