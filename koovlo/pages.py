"""Page selection parsing for the PDF tools. Input pages are 1-based."""
from typing import Iterable, List, Optional


def parse_page_list(text: str, total: Optional[int] = None) -> List[int]:
    """
    Strict parser: "1,3-5, 8" -> [1, 3, 4, 5, 8].
    Duplicates are removed and the result is sorted. With `total`, pages
    past the end of the document are rejected before any range is expanded.
    """
    pages = set()
    for raw in (text or "").split(","):
        part = raw.strip()
        if not part:
            continue
        if "-" in part:
            start_s, _, end_s = part.partition("-")
            try:
                start, end = int(start_s.strip()), int(end_s.strip())
            except ValueError:
                raise ValueError(f"Invalid range: {part}")
            if start < 1 or start > end:
                raise ValueError(f"Invalid range: {part}")
            if total is not None:
                check_pages_exist((end,), total)
            pages.update(range(start, end + 1))
        else:
            try:
                page = int(part)
            except ValueError:
                raise ValueError(f"Invalid page number: {part}")
            if page < 1:
                raise ValueError(f"Invalid page number: {part}")
            if total is not None:
                check_pages_exist((page,), total)
            pages.add(page)
    return sorted(pages)


def parse_split_selection(text: str, total: int) -> List[int]:
    """
    Lenient parser used by the split tool. Returns 0-based indices in the
    order given; ranges are clipped to the document and junk is dropped.
    """
    indices: List[int] = []
    for raw in (text or "").split(","):
        part = raw.strip()
        if not part:
            continue
        if "-" in part:
            start_s, _, end_s = part.partition("-")
            try:
                start, end = int(start_s.strip()), int(end_s.strip())
            except ValueError:
                continue
            start = max(start, 1)
            end = min(end, total)
            indices.extend(range(start - 1, end))
        else:
            try:
                page = int(part)
            except ValueError:
                continue
            if 1 <= page <= total:
                indices.append(page - 1)
    return indices


def parse_range_groups(text: str, total: Optional[int] = None) -> List[List[int]]:
    """
    Each comma part is one output group: "1-3,5" -> [[1, 2, 3], [5]].
    With `total`, groups starting past the end are dropped and the rest
    are clipped to the document.
    """
    groups: List[List[int]] = []
    for raw in (text or "").split(","):
        part = raw.strip()
        if not part:
            continue
        if "-" in part:
            start_s, _, end_s = part.partition("-")
            try:
                start, end = int(start_s.strip()), int(end_s.strip())
            except ValueError:
                continue
            if total is not None:
                end = min(end, total)
            if 1 <= start <= end:
                groups.append(list(range(start, end + 1)))
        else:
            try:
                page = int(part)
            except ValueError:
                continue
            if page > 0 and (total is None or page <= total):
                groups.append([page])
    return groups


def check_pages_exist(pages: Iterable[int], total: int) -> None:
    for page in pages:
        if page < 1 or page > total:
            raise ValueError(f"Page {page} does not exist (the document has {total} pages).")
