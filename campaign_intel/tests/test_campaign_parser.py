"""
Unit Tests for the campaign name parser.

Naming convention: OBJECTIVE_PARTNER+PRODUCT_AUDIENCE_YYYY-MM-DD_(Page)_SUFFIX
"""

import pytest

from campaign_intel.services.campaign_parser import (
    categorize_audience,
    normalize_product,
    parse_campaign_name,
)


class TestParseCampaignName:

    def test_full_convention(self):
        parsed = parse_campaign_name(
            'CONVERSIONS_THAILIFE+LIFE-SENIOR-MORRADOK_INTEREST-SHOPPING_2025-11-01_(MainPage)_V2'
        )
        assert parsed.objective == 'CONVERSIONS'
        assert parsed.partner == 'THAILIFE'
        assert parsed.product_raw == 'SENIOR-MORRADOK'
        assert parsed.product_code == 'LIFE-SENIOR-MORRADOK'
        assert parsed.audience == 'INTEREST-SHOPPING'
        assert parsed.audience_category == 'Interest'
        assert parsed.start_date == '2025-11-01'
        assert parsed.page == 'MainPage'
        assert parsed.suffix == 'V2'

    def test_product_in_following_segment(self):
        parsed = parse_campaign_name('LEAD_THAILIFE+_สูงวัยมีทรัพย์_BROAD_2024-01-05')
        assert parsed.product_raw == 'สูงวัยมีทรัพย์'
        assert parsed.product_code == 'LIFE-EXTRASENIOR-BUPHAKARI'
        assert parsed.audience == 'BROAD'
        assert parsed.audience_category == 'Broad'
        assert parsed.page == 'Unknown'
        assert parsed.suffix == ''

    def test_product_followed_directly_by_date(self):
        parsed = parse_campaign_name('THAILIFE+HAPPY_2024-01-01')
        assert parsed.objective == 'Unknown'
        assert parsed.product_code == 'SAVING-HAPPY'
        assert parsed.audience == 'Unknown'

    def test_without_date_the_rest_is_audience(self):
        parsed = parse_campaign_name('AWARENESS_THAILIFE+HEALTH-SABAI_LAL-1PCT_RETARGET')
        assert parsed.product_code == 'HEALTH-SABAI-JAI'
        assert parsed.audience == 'LAL-1PCT_RETARGET'
        assert parsed.audience_category == 'Lookalike'
        assert parsed.start_date is None

    def test_name_without_anchor(self):
        parsed = parse_campaign_name('Spring promo - video')
        assert parsed.partner == 'Unknown'
        assert parsed.product_code == 'Unknown'
        assert parsed.audience_category == 'Other'

    @pytest.mark.parametrize('name', [None, ''])
    def test_empty_name(self, name):
        parsed = parse_campaign_name(name)
        assert parsed.objective == 'Unknown'
        assert parsed.audience_category == 'Unknown'


class TestNormalizeProduct:

    @pytest.mark.parametrize('raw,code', [
        ('แฮปปี้', 'SAVING-HAPPY'),
        ('money saving 14/6', 'SAVING-MONEYSAVING14/6'),
        ('TopUp', 'HEALTH-TOPUP-SICK'),
        ('bone care', 'LIFE-SENIOR-BONECARE'),
        ('มรดก', 'LIFE-SENIOR-MORRADOK'),
        ('new-plan', 'NEW-PLAN'),
        ('', 'Unknown'),
        (None, 'Unknown'),
        ('Unknown', 'Unknown'),
    ])
    def test_codes(self, raw, code):
        assert normalize_product(raw) == code


class TestCategorizeAudience:

    @pytest.mark.parametrize('audience,category', [
        ('INTEREST-SHOPPING', 'Interest'),
        ('broad', 'Broad'),
        ('LOOKALIKE-3', 'Lookalike'),
        ('RETARGET-30D', 'Retargeting'),
        ('CUSTOM', 'Other'),
    ])
    def test_categories(self, audience, category):
        assert categorize_audience(audience) == category
