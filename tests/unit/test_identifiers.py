"""
Unit tests for source-to-target identifier remapping.

Every key in the target store is recomputed from the source key, so the
remapper must be deterministic, injective and strict about its input.
"""

import re
import uuid

import pytest
from bson import ObjectId

from medichat_migration.exceptions import InvalidIdentifierError, RecordTransformError
from medichat_migration.identifiers import is_source_id, remap, remap_optional

TARGET_PATTERN = re.compile(r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$')


class TestRemap:
    """Tests for remap()."""

    def test_known_example(self):
        assert remap('507f1f77bcf86cd799439011') == '507f1f77-bcf8-6cd7-9943-901100000000'

    def test_accepts_object_id(self):
        object_id = ObjectId('507f1f77bcf86cd799439011')
        assert remap(object_id) == remap(str(object_id))

    def test_deterministic(self):
        object_id = ObjectId()
        assert remap(object_id) == remap(object_id)
        assert remap(str(object_id)) == remap(str(object_id))

    def test_output_shape(self):
        for _ in range(20):
            target = remap(ObjectId())
            assert TARGET_PATTERN.match(target)
            assert target.endswith('00000000')

    def test_output_is_a_valid_uuid(self):
        target = remap('65a1b2c3d4e5f60718293a4b')
        assert str(uuid.UUID(target)) == target

    def test_distinct_inputs_give_distinct_outputs(self):
        sources = {str(ObjectId()) for _ in range(200)}
        assert len({remap(source) for source in sources}) == len(sources)

    def test_source_digits_preserved_in_order(self):
        source = '0123456789abcdef01234567'
        assert remap(source).replace('-', '')[:24] == source

    def test_upper_case_input_rejected(self):
        with pytest.raises(InvalidIdentifierError):
            remap('507F1F77BCF86CD799439011')
        with pytest.raises(InvalidIdentifierError):
            remap('507f1f77bcf86cd79943901A')

    def test_trailing_newline_rejected(self):
        with pytest.raises(InvalidIdentifierError) as exc_info:
            remap('507f1f77bcf86cd799439011\n')
        assert exc_info.value.value == '507f1f77bcf86cd799439011\n'

    @pytest.mark.parametrize('value', [
        '',
        '507f1f77bcf86cd79943901',       # 23 characters
        '507f1f77bcf86cd7994390111',     # 25 characters
        '507f1f77bcf86cd79943901z',      # non-hex
        '507f1f77-bcf8-6cd7-9943-9011',  # already hyphenated
        '507F1F77BCF86CD799439011',      # upper-case
        '507f1f77bcf86cd799439011\n',    # trailing newline
        ' 507f1f77bcf86cd799439011',     # leading space
        None,
        12345,
        b'507f1f77bcf86cd799439011',
    ])
    def test_invalid_input_rejected(self, value):
        with pytest.raises(InvalidIdentifierError):
            remap(value)

    def test_invalid_input_is_a_record_error(self):
        with pytest.raises(RecordTransformError) as exc_info:
            remap('not-an-object-id')
        assert isinstance(exc_info.value, ValueError)
        assert exc_info.value.value == 'not-an-object-id'


class TestRemapOptional:
    """Tests for remap_optional()."""

    @pytest.mark.parametrize('value', [None, ''])
    def test_absent_reference(self, value):
        assert remap_optional(value) is None

    def test_present_reference(self):
        assert remap_optional('507f1f77bcf86cd799439011') == '507f1f77-bcf8-6cd7-9943-901100000000'

    def test_malformed_reference_still_rejected(self):
        with pytest.raises(InvalidIdentifierError):
            remap_optional('xyz')


class TestIsSourceId:

    def test_object_id(self):
        assert is_source_id(ObjectId())

    def test_hex_string(self):
        assert is_source_id('507f1f77bcf86cd799439011')

    def test_rejects_other_values(self):
        assert not is_source_id('507f1f77bcf86cd79943901')
        assert not is_source_id(None)
        assert not is_source_id(42)
        assert not is_source_id('507F1F77BCF86CD799439011')
        assert not is_source_id('507f1f77bcf86cd799439011\n')
