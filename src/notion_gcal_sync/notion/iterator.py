"""Iterator for working with paginated responses of the Notion API."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

MAX_PAGE_SIZE = 100

_logger = logging.getLogger(__name__)


class ObjectList(BaseModel):
    """A paginated list of objects returned by the Notion API.

    More details in the [Notion API](https://developers.notion.com/reference/intro#responses).
    """

    results: list[dict[str, Any]] = Field(default_factory=list)
    has_more: bool = False
    next_cursor: str | None = None


T = TypeVar('T')


class EndpointIterator(Generic[T]):
    """Functor to iterate over results from a paginated API response.

    Every raw result is passed to `model_validate`, e.g. `Page.model_validate`, before being yielded.
    """

    has_more: bool | None = None
    page_num: int = -1
    total_items: int = -1
    next_cursor: str | None = None

    def __init__(self, endpoint: Callable[..., Any], *, model_validate: Callable[[dict[str, Any]], T]):
        """Initialize an object list iterator for the specified endpoint."""
        self._endpoint = endpoint
        self._model_validate = model_validate

    def __call__(self, **kwargs: Any) -> Iterator[T]:
        """Return a generator for this endpoint using the given parameters."""

        self.has_more = True
        self.page_num = 0
        self.total_items = 0

        if 'page_size' not in kwargs:
            kwargs['page_size'] = MAX_PAGE_SIZE

        self.next_cursor = kwargs.pop('start_cursor', None)

        while self.has_more:
            self.page_num += 1

            if self.next_cursor is None:
                msg = f'Fetching page {self.page_num} of endpoint.'
            else:
                msg = f'Fetching page {self.page_num} of endpoint with next cursor {self.next_cursor}.'
            _logger.debug(msg)

            if self.next_cursor is None:
                result_page = self._endpoint(**kwargs)
            else:
                result_page = self._endpoint(start_cursor=self.next_cursor, **kwargs)
            obj_list = ObjectList.model_validate(result_page)

            for obj in obj_list.results:
                self.total_items += 1
                yield self._model_validate(obj)

            self.next_cursor = obj_list.next_cursor
            self.has_more = obj_list.has_more and self.next_cursor is not None

        _logger.debug(f'Fetched {self.total_items} item(s) in total over {self.page_num} page(s).')
