"""Unit tests for title date extraction."""
from datetime import date

import pytest

from processor.title_parser import extract_date_from_title


class TestExtractDateFromTitle:
    """Test cases for extract_date_from_title."""

    def test_parenthesised_date(self):
        clean_title, extracted = extract_date_from_title('NSW Masters Carnival (19/07/2025)')

        assert clean_title == 'NSW Masters Carnival'
        assert extracted == date(2025, 7, 19)

    def test_dash_separated_date(self):
        result = extract_date_from_title('Masters Carnival - 21/06/2025')

        assert result.clean_title == 'Masters Carnival'
        assert result.extracted_date == date(2025, 6, 21)

    def test_pipe_separated_named_date(self):
        result = extract_date_from_title('Masters Gala Day | 20th Sep 2024')

        assert result.clean_title == 'Masters Gala Day'
        assert result.extracted_date == date(2024, 9, 20)

    def test_trailing_date(self):
        result = extract_date_from_title('QLD Masters Round 19-07-2025')

        assert result.clean_title == 'QLD Masters Round'
        assert result.extracted_date == date(2025, 7, 19)

    def test_other_parenthesised_groups_are_removed(self):
        result = extract_date_from_title('Masters (Open) Carnival (19/07/2025)')

        assert result.clean_title == 'Masters Carnival'

    def test_name_only_in_brackets_is_recovered(self):
        result = extract_date_from_title('(Bush Carnival) (19/07/2025)')

        assert result.clean_title == 'Bush Carnival'
        assert result.extracted_date == date(2025, 7, 19)

    def test_no_date(self):
        result = extract_date_from_title('  Country Masters 2025  ')

        assert result.clean_title == 'Country Masters 2025'
        assert result.extracted_date is None

    def test_unparseable_date_leaves_title(self):
        result = extract_date_from_title('Carnival (31/02/2025)')

        assert result.clean_title == 'Carnival (31/02/2025)'
        assert result.extracted_date is None

    def test_clean_title_is_stable(self):
        """Test that extracting from an already clean title changes nothing."""
        first = extract_date_from_title('NSW Masters Carnival (19/07/2025)')
        second = extract_date_from_title(first.clean_title)

        assert second.clean_title == first.clean_title
        assert second.extracted_date is None

    @pytest.mark.parametrize('value', [None, '', 42])
    def test_non_string_input(self, value):
        result = extract_date_from_title(value)

        assert result.clean_title == value
        assert result.extracted_date is None
