"""Test helper functions for creating PerformanceRow and Keyword instances."""

from searchterm_intel.models.performance import Keyword, PerformanceRow


def create_row(**overrides) -> PerformanceRow:
    """
    Create a test PerformanceRow with sensible defaults.

    Args:
        **overrides: Keyword arguments to override default values

    Returns:
        PerformanceRow instance with the specified values

    Example:
        >>> row = create_row(query="wireless earbuds", orders=3, sales=90.0)
    """
    defaults = {
        "query": "wireless earbuds",
        "campaign_id": "1",
        "campaign_name": "Test Campaign",
        "campaign_type": "sponsored_products",
        "ad_group_id": "11",
        "match_type": "broad",
        "targeting_type": "keyword",
        "impressions": 1000,
        "clicks": 50,
        "spend": 40.0,
        "orders": 0,
        "sales": 0.0,
    }
    return PerformanceRow(**{**defaults, **overrides})


def create_query_batch(
    count: int, template: str = "query {i}", **common
) -> list[PerformanceRow]:
    """
    Create ``count`` rows with distinct query texts built from ``template``.

    Args:
        count: Number of rows to create
        template: Query text format string receiving ``i``
        **common: Overrides shared by every row

    Returns:
        List of PerformanceRow instances
    """
    return [create_row(query=template.format(i=i), **common) for i in range(count)]


def create_keyword(text: str, campaign_id: str = "1", **overrides) -> Keyword:
    """Create an active exact-match test keyword."""
    defaults = {
        "campaign_name": f"Campaign {campaign_id}",
        "ad_group_id": f"{campaign_id}1",
        "match_type": "exact",
    }
    return Keyword(text=text, campaign_id=campaign_id, **{**defaults, **overrides})
