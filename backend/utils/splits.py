"""Split calculation utilities for group expenses."""

import schemas


def calculate_equal_splits(amount: int, member_ids: list[int]) -> list[schemas.SplitCreate]:
    """
    Divide an amount equally among members.

    Each member gets amount // n paise; the leftover paise go one each to
    the first members in the given order, so the splits always add up to
    the full amount.
    """
    if not member_ids:
        return []

    share_per_person = amount // len(member_ids)
    remainder = amount % len(member_ids)

    splits = []
    for idx, user_id in enumerate(member_ids):
        splits.append(schemas.SplitCreate(
            user_id=user_id,
            amount=share_per_person + (1 if idx < remainder else 0)
        ))
    return splits
