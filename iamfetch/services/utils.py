import threading
from typing import Dict, Iterable, Iterator, List, Optional, TypeVar

T = TypeVar("T")


def format_tags(tags_list: Optional[List[Dict[str, str]]]) -> Dict[str, str]:
    """Converts the AWS tag list format to a simple key-value dictionary."""
    if not tags_list:
        return {}
    return {tag['Key']: tag['Value'] for tag in tags_list if 'Key' in tag and 'Value' in tag}


def chunked(items: Iterable[T], size: int) -> Iterator[List[T]]:
    """Yield successive lists of at most `size` items."""
    batch: List[T] = []
    for item in items:
        batch.append(item)
        if len(batch) == size:
            yield batch
            batch = []
    if batch:
        yield batch


class FirstErrorCollector:
    """Thread-safe slot that keeps the first error recorded and ignores the rest."""

    def __init__(self):
        self._lock = threading.Lock()
        self._error: Optional[BaseException] = None

    def record(self, error: BaseException) -> None:
        with self._lock:
            if self._error is None:
                self._error = error

    @property
    def error(self) -> Optional[BaseException]:
        with self._lock:
            return self._error

    def raise_if_set(self) -> None:
        error = self.error
        if error is not None:
            raise error
