"""Unit tests for structured image naming."""
from datetime import date

import pytest

from media.image_naming import build_image_name, name_prefix


class TestBuildImageName:
    """Test cases for build_image_name."""

    def test_logo_name_and_path(self):
        image = build_image_name(
            entity_type='carnival',
            entity_id='42',
            image_type='logo',
            original_name='mysideline-logo.PNG',
            upload_date=date(2025, 6, 1),
            custom_suffix='mysideline',
        )

        assert image.filename == 'carnival-000042-logo-20250601-system-001-mysideline.png'
        assert image.relative_path == 'carnival/42/logo'
        assert image.full_path == (
            'carnival/42/logo/carnival-000042-logo-20250601-system-001-mysideline.png'
        )
        assert image.metadata['sequence'] == 1
        assert image.metadata['extension'] == '.png'
        assert len(image.metadata['integrity_hash']) == 8

    def test_sequence_and_uploader(self):
        image = build_image_name(
            'club', 7, 'gallery', 'photo.jpg', date(2025, 1, 2), sequence=12, uploader='u5'
        )

        assert image.filename == 'club-000007-gallery-20250102-u5-012.jpg'
        assert image.metadata['custom_suffix'] is None

    def test_hash_is_deterministic(self):
        first = build_image_name('carnival', 'abc', 'logo', 'a.svg', date(2025, 6, 1))
        second = build_image_name('carnival', 'abc', 'logo', 'b.svg', date(2025, 6, 1))
        third = build_image_name('carnival', 'abc', 'logo', 'a.svg', date(2025, 6, 1), sequence=2)

        assert first.metadata['integrity_hash'] == second.metadata['integrity_hash']
        assert first.metadata['integrity_hash'] != third.metadata['integrity_hash']

    @pytest.mark.parametrize('kwargs', [
        {'entity_type': 'venue'},
        {'image_type': 'poster'},
        {'entity_id': ''},
        {'sequence': 0},
        {'original_name': 'no-extension'},
    ])
    def test_invalid_inputs(self, kwargs):
        values = {
            'entity_type': 'carnival',
            'entity_id': '1',
            'image_type': 'logo',
            'original_name': 'logo.png',
            'upload_date': date(2025, 6, 1),
        }
        values.update(kwargs)

        with pytest.raises(ValueError):
            build_image_name(**values)


def test_name_prefix():
    assert name_prefix('carnival', '12', 'logo', date(2025, 6, 1)) == 'carnival-000012-logo-20250601'
