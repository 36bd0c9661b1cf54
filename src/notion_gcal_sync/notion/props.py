"""Pages and property values returned by the Notion API mapped to Python objects.

Only the property types needed to decode a task are modelled in detail. Every other property type
is kept as `OtherProperty` so that pages of databases with arbitrary additional columns still validate.

[retrieve a page]: https://developers.notion.com/reference/retrieve-a-page
[property values]: https://developers.notion.com/reference/page-property-values
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.functional_validators import BeforeValidator


class NotionObject(BaseModel):
    """Base class of all objects decoded from the Notion API."""

    model_config = ConfigDict(extra='ignore')


class RichTextObject(NotionObject):
    """A single rich text segment, only its plain text is of interest."""

    plain_text: str = ''


class SelectOption(NotionObject):
    """Option of a select or status property."""

    id: str | None = None
    name: str
    color: str | None = None


class DateRange(NotionObject):
    """A date or date time, optionally with end and time zone."""

    start: str
    end: str | None = None
    time_zone: str | None = None


def join_plain_text(rich_texts: list[RichTextObject]) -> str:
    return ''.join(rich_text.plain_text for rich_text in rich_texts)


class PropertyValue(NotionObject):
    """Base class for Notion property values."""

    id: str | None = None
    type: str


class Title(PropertyValue):
    """Notion title type."""

    type: Literal['title'] = 'title'
    title: list[RichTextObject] = Field(default_factory=list)

    @property
    def value(self) -> str:
        return join_plain_text(self.title)


class RichText(PropertyValue):
    """Notion rich text type."""

    type: Literal['rich_text'] = 'rich_text'
    rich_text: list[RichTextObject] = Field(default_factory=list)

    @property
    def value(self) -> str:
        return join_plain_text(self.rich_text)


class Date(PropertyValue):
    """Notion complex date type - may include time and/or be a date range."""

    type: Literal['date'] = 'date'
    date: DateRange | None = None


class Status(PropertyValue):
    """Notion status property."""

    type: Literal['status'] = 'status'
    status: SelectOption | None = None


class Select(PropertyValue):
    """Notion select type."""

    type: Literal['select'] = 'select'
    select: SelectOption | None = None


class OtherProperty(PropertyValue):
    """Any property type that is not needed for syncing."""

    model_config = ConfigDict(extra='allow')


PROPERTY_TYPES: dict[str, type[PropertyValue]] = {
    'title': Title,
    'rich_text': RichText,
    'date': Date,
    'status': Status,
    'select': Select,
}


def convert_to_prop_value(data: Any) -> PropertyValue:
    """Convert a dictionary to the corresponding subtype of property value.

    Used in `Page` below to convert the properties of a page.
    """
    if isinstance(data, PropertyValue):
        return data
    if not isinstance(data, dict) or 'type' not in data:
        msg = 'Unknown property value in page'
        raise ValueError(msg)
    model_class = PROPERTY_TYPES.get(data['type'], OtherProperty)
    return model_class.model_validate(data)


class Page(NotionObject):
    """A page of a Notion database with its property values."""

    object: Literal['page'] = 'page'
    id: str
    last_edited_time: datetime | None = None
    archived: bool = False
    properties: dict[str, Annotated[PropertyValue, BeforeValidator(convert_to_prop_value)]] = Field(
        default_factory=dict
    )


class DataSourceRef(NotionObject):
    """Reference to a data source of a database."""

    id: str
    name: str | None = None


class Database(NotionObject):
    """Metadata of a Notion database, only its data sources are of interest."""

    object: Literal['database'] = 'database'
    id: str
    data_sources: list[DataSourceRef] = Field(default_factory=list)


def rich_text_value(content: str | None) -> dict[str, Any]:
    """Build the request value of a rich text property, an empty content clears it."""
    if not content:
        return {'rich_text': []}
    return {'rich_text': [{'type': 'text', 'text': {'content': content}}]}
