"""
Query filters for team listing queries.

This module provides filtering and pagination for listing teams from the
database, with a case-insensitive name filter and page based navigation.
"""

from dataclasses import dataclass, replace
from typing import Any, ClassVar, Dict, Optional


@dataclass
class TeamQueryFilters:
    """Filters for paginated team listings.

    Attributes:
        name: Case-insensitive substring filter on the team name. None or an
            empty string returns all teams.
        page: 1-based page number. Defaults to 1.
        page_size: Number of teams per page. Defaults to 20. Maximum is 1000.

    Raises:
        ValueError: If validation fails for any filter value.

    Examples:
        >>> filters = TeamQueryFilters(name="eng", page_size=10)
        >>> filters.offset
        0
        >>> filters.next_page().offset
        10
    """

    name: Optional[str] = None
    page: int = 1
    page_size: int = 20

    MAX_PAGE_SIZE: ClassVar[int] = 1000

    def __post_init__(self) -> None:
        """Validate filter values after initialization.

        Raises:
            ValueError: If page or page_size is out of range.
        """
        if self.name is not None:
            self.name = self.name.strip()

        if self.page < 1:
            raise ValueError(f"page must be at least 1, got {self.page}")

        if self.page_size < 1:
            raise ValueError(f"page_size must be at least 1, got {self.page_size}")

        if self.page_size > self.MAX_PAGE_SIZE:
            raise ValueError(
                f"page_size cannot exceed {self.MAX_PAGE_SIZE}, got {self.page_size}"
            )

    @property
    def offset(self) -> int:
        """Number of rows skipped before this page."""
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size

    def has_name_filter(self) -> bool:
        return bool(self.name)

    def like_pattern(self) -> Optional[str]:
        """Build the LIKE pattern for the name filter.

        ``%``, ``_`` and the escape character itself are escaped so the name
        is matched literally.

        Returns:
            Pattern for ``LIKE ? ESCAPE '\\'`` or None without a name filter.
        """
        if not self.has_name_filter():
            return None
        escaped = (
            self.name.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        )
        return f"%{escaped}%"

    def next_page(self) -> "TeamQueryFilters":
        return self.copy_with(page=self.page + 1)

    def previous_page(self) -> "TeamQueryFilters":
        """Create a filter for the previous page, never going below page 1."""
        return self.copy_with(page=max(1, self.page - 1))

    def copy_with(self, **kwargs: Any) -> "TeamQueryFilters":
        """Create a modified copy of this filter instance.

        Args:
            **kwargs: Attribute names and new values to apply.

        Returns:
            New TeamQueryFilters instance with modifications applied.
        """
        return replace(self, **kwargs)

    def total_pages(self, total: int) -> int:
        """Number of pages needed for ``total`` rows (at least 1)."""
        if total <= 0:
            return 1
        return (total + self.page_size - 1) // self.page_size

    def to_query_params(self) -> Dict[str, Any]:
        """Export active filters as a dictionary.

        Returns:
            Dictionary with the name filter (when set) and pagination values.
        """
        params: Dict[str, Any] = {}
        if self.has_name_filter():
            params["name"] = self.name
        params["page"] = self.page
        params["page_size"] = self.page_size
        return params

    def __str__(self) -> str:
        parts = []
        if self.has_name_filter():
            parts.append(f"name~{self.name!r}")
        parts.append(f"page={self.page}")
        parts.append(f"page_size={self.page_size}")
        return f"TeamQueryFilters({', '.join(parts)})"
