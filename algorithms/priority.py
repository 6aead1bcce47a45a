# algorithms/priority.py
"""
Ordering of blood needs for the active-needs listing.

Needs are ranked by urgency first (critical, urgent, normal, anything else),
then by distance for donors (nearest first, unknown distance last), and
finally newest first.
"""

URGENCY_RANK = {
    'critical': 1,
    'urgent': 2,
    'normal': 3,
}
UNKNOWN_URGENCY_RANK = 4


def urgency_rank(urgency_level):
    """
    Convert urgency level to its sort rank (lower sorts first)
    """
    return URGENCY_RANK.get(urgency_level, UNKNOWN_URGENCY_RANK)


def rank_needs(needs, by_distance=False):
    """
    Sort blood needs for display.

    Args:
        needs: iterable of BloodNeed objects; each must carry a
            ``distance_km`` attribute when by_distance is True
        by_distance: tie-break on distance before posting time (donor view)

    Returns:
        New list, sorted
    """
    needs_list = list(needs) if needs is not None else []

    # Stable sorts, least significant key first
    needs_list.sort(key=lambda need: need.posted_at, reverse=True)
    if by_distance:
        needs_list.sort(key=lambda need: (need.distance_km is None, need.distance_km or 0.0))
    needs_list.sort(key=lambda need: urgency_rank(need.urgency_level))

    return needs_list
