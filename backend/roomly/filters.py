"""
Roomly Backend - Pagination & Sorting Filters
==============================================

What:  Page/page_size/sort query parameters for list endpoints, their
       validation, and the metadata block returned with each page.
How:   The sort value is checked against a safelist before it is ever
       turned into an ORDER BY column; a leading "-" means descending.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List

from roomly.validator import Validator, permitted_value

MAX_PAGE = 10_000_000
MAX_PAGE_SIZE = 100


@dataclass
class Filters:
    page: int = 1
    page_size: int = 20
    sort: str = "id"
    sort_safelist: List[str] = field(default_factory=list)

    def sort_column(self) -> str:
        if self.sort not in self.sort_safelist:
            raise ValueError(f"unsafe sort parameter: {self.sort}")
        return self.sort.lstrip("-")

    def sort_descending(self) -> bool:
        return self.sort.startswith("-")

    def limit(self) -> int:
        return self.page_size

    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def validate_filters(v: Validator, f: Filters) -> None:
    v.check(f.page > 0, "page", "must be greater than zero")
    v.check(f.page <= MAX_PAGE, "page", "must be a maximum of 10 million")
    v.check(f.page_size > 0, "page_size", "must be greater than zero")
    v.check(f.page_size <= MAX_PAGE_SIZE, "page_size", "must be a maximum of 100")
    v.check(permitted_value(f.sort, f.sort_safelist), "sort", "invalid sort value")


def calculate_metadata(total_records: int, page: int, page_size: int) -> Dict[str, int]:
    """Empty dict when nothing matched, so clients can tell 'no results' apart."""
    if total_records == 0:
        return {}
    return {
        "current_page": page,
        "page_size": page_size,
        "first_page": 1,
        "last_page": math.ceil(total_records / page_size),
        "total_records": total_records,
    }
