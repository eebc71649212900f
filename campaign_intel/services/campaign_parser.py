"""
Campaign name parser.

Campaign names follow the account's naming convention, segments joined by '_':

    OBJECTIVE_PARTNER+PRODUCT_AUDIENCE_YYYY-MM-DD_(Page)_SUFFIX

e.g. ``CONVERSIONS_THAILIFE+LIFE-SENIOR-MORRADOK_INTEREST-SHOPPING_2025-11-01_(MainPage)_V2``.
The ``THAILIFE+`` segment anchors the parse; names without it keep every field
at 'Unknown'. Product names (Thai or English) are normalized to product codes
through PRODUCT_PATTERNS.
"""

import re
from typing import List, Optional, Pattern, Tuple

from campaign_intel.models.schemas import ParsedCampaign


UNKNOWN = 'Unknown'
PARTNER_ANCHOR = 'THAILIFE+'

# First match wins
PRODUCT_PATTERNS: List[Tuple[Pattern[str], str]] = [
    (re.compile(r'แฮปปี้|HAPPY', re.IGNORECASE), 'SAVING-HAPPY'),
    (re.compile(r'14/6|มันนี่|เซฟวิ่ง|money.?saving|ออม', re.IGNORECASE), 'SAVING-MONEYSAVING14/6'),
    (re.compile(r'เติมเงิน|top.?up', re.IGNORECASE), 'HEALTH-TOPUP-SICK'),
    (re.compile(r'เหมาสบายใจ|สบายใจ|sabai', re.IGNORECASE), 'HEALTH-SABAI-JAI'),
    (re.compile(r'สูงวัยมีทรัพย์|buphakari', re.IGNORECASE), 'LIFE-EXTRASENIOR-BUPHAKARI'),
    (re.compile(r'โบนแคร์|bone.?care', re.IGNORECASE), 'LIFE-SENIOR-BONECARE'),
    (re.compile(r'ไร้กังวล|สูงวัยไร้กังวล|มรดก|moradok|morradok', re.IGNORECASE), 'LIFE-SENIOR-MORRADOK'),
]

AUDIENCE_CATEGORIES: List[Tuple[Tuple[str, ...], str]] = [
    (('INTEREST',), 'Interest'),
    (('BROAD',), 'Broad'),
    (('LOOKALIKE', 'LAL'), 'Lookalike'),
    (('RETARGET',), 'Retargeting'),
]

_DATE_SEGMENT = re.compile(r'\d{4}-\d{2}-\d{2}')


def normalize_product(product_raw: Optional[str]) -> str:
    """Map a raw product segment to its product code; unknown names are upper-cased."""
    if not product_raw or product_raw == UNKNOWN:
        return UNKNOWN
    product = product_raw.strip()
    for pattern, code in PRODUCT_PATTERNS:
        if pattern.search(product):
            return code
    return product.upper()


def categorize_audience(audience: str) -> str:
    upper = audience.upper()
    for markers, category in AUDIENCE_CATEGORIES:
        if any(marker in upper for marker in markers):
            return category
    return 'Other'


def _find_date_index(parts: List[str]) -> int:
    for index, part in enumerate(parts):
        if _DATE_SEGMENT.search(part):
            return index
    return -1


def parse_campaign_name(campaign_name: Optional[str]) -> ParsedCampaign:
    """
    Extract objective, partner, product, audience, start date, page and suffix.

    Never raises; unparsable names yield 'Unknown' fields.
    """
    if not campaign_name:
        return ParsedCampaign()

    parts = campaign_name.split('_')
    anchor = next((i for i, part in enumerate(parts) if PARTNER_ANCHOR in part), -1)

    objective = partner = product_raw = audience = page = UNKNOWN
    start_date: Optional[str] = None
    suffix = ''

    if anchor != -1:
        if anchor > 0:
            objective = '_'.join(parts[:anchor])

        product_segment = parts[anchor]
        partner = product_segment.split('+', 1)[0]
        clean = product_segment.split(PARTNER_ANCHOR, 1)[1]

        next_part = parts[anchor + 1] if anchor + 1 < len(parts) else None
        if '-' in clean:
            # "LIFE-SENIOR-MORRADOK": the leading segment is the product line
            product_raw = clean.split('-', 1)[1]
        elif next_part and not _DATE_SEGMENT.search(next_part):
            product_raw = next_part
        else:
            product_raw = clean

        search_from = anchor + 1
        if next_part is not None and next_part == product_raw:
            search_from += 1

        date_index = _find_date_index(parts)
        if date_index != -1:
            start_date = parts[date_index]
            if date_index > search_from:
                audience = '_'.join(parts[search_from:date_index])

            trailing = parts[date_index + 1:]
            page_part = next(
                (p for p in trailing if p.startswith('(') and p.endswith(')')),
                None,
            )
            if page_part:
                page = page_part[1:-1]
            suffix = '_'.join(p for p in trailing if not p.startswith('('))
        elif len(parts) > search_from:
            audience = '_'.join(parts[search_from:])

    return ParsedCampaign(
        objective=objective,
        partner=partner,
        product_code=normalize_product(product_raw),
        product_raw=product_raw,
        audience=audience,
        audience_category=categorize_audience(audience),
        start_date=start_date,
        page=page,
        suffix=suffix,
    )
