"""Unit tests for event validation."""
from datetime import date

from processor.event_validator import EventValidator
from processor.models import DEFAULT_EVENT_TITLE, RawEvent


def make_event(**overrides):
    values = {
        'my_sideline_id': 'ms-1',
        'title': 'NSW Masters Carnival',
        'date': date(2025, 7, 19),
        'my_sideline_title': 'NSW Masters Carnival (19/07/2025)',
    }
    values.update(overrides)
    return RawEvent(**values)


class TestEventValidator:
    """Test cases for EventValidator."""

    def test_trims_text_fields(self):
        validator = EventValidator()
        event = make_event(
            title='  NSW Masters Carnival  ',
            location_address='  1 Oval Rd  ',
            organiser_contact_name='  Jo Smith ',
        )

        cleaned = validator.clean(event)

        assert cleaned.title == 'NSW Masters Carnival'
        assert cleaned.location_address == '1 Oval Rd'
        assert cleaned.organiser_contact_name == 'Jo Smith'

    def test_does_not_mutate_input(self):
        validator = EventValidator()
        event = make_event(title='  Padded  ')

        validator.clean(event)

        assert event.title == '  Padded  '

    def test_blank_title_gets_default(self):
        cleaned = EventValidator().clean(make_event(title='   '))

        assert cleaned.title == DEFAULT_EVENT_TITLE

    def test_blank_optional_fields_become_none(self):
        cleaned = EventValidator().clean(
            make_event(location_address='  ', organiser_contact_name='')
        )

        assert cleaned.location_address is None
        assert cleaned.organiser_contact_name is None

    def test_valid_email_is_lowercased(self):
        cleaned = EventValidator().clean(
            make_event(organiser_contact_email=' Organiser@Example.COM ')
        )

        assert cleaned.organiser_contact_email == 'organiser@example.com'

    def test_invalid_email_is_dropped(self):
        cleaned = EventValidator().clean(make_event(organiser_contact_email='not-an-email'))

        assert cleaned.organiser_contact_email is None

    def test_validate_events_drops_failures(self):
        """Test that an event which cannot be cleaned is skipped, not fatal."""
        validator = EventValidator()
        events = [make_event(), object(), make_event(my_sideline_id='ms-2')]

        cleaned = validator.validate_events(events)

        assert [event.my_sideline_id for event in cleaned] == ['ms-1', 'ms-2']

    def test_validate_events_empty(self):
        assert EventValidator().validate_events([]) == []
