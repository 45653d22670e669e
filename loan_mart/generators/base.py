"""Base generator class for synthetic raw data."""

from __future__ import annotations

import random
from abc import ABC
from datetime import date

from faker import Faker


def add_months(start: date, months: int) -> date:
    """Shift ``start`` by whole months, keeping the day within every month."""
    month_index = start.month - 1 + months
    return date(start.year + month_index // 12, month_index % 12 + 1, min(start.day, 28))


class BaseGenerator(ABC):
    """Base class for all data generators.

    Provides a seeded Faker instance and a private random stream, so two
    generators built with the same seed produce the same rows.

    Parameters
    ----------
    seed : int | None
        Random seed for reproducibility.
    locale : str
        Faker locale (default ``en_US``).
    """

    def __init__(self, seed: int | None = None, locale: str = "en_US") -> None:
        self.fake = Faker(locale)
        self.rng = random.Random(seed)
        if seed is not None:
            self.fake.seed_instance(seed)
