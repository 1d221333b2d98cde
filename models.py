"""
Record types for the STP JSON API.

The API mixes naming styles (``PublicationID`` in the download payload,
``topicKey`` everywhere else), so each model declares the wire name as an
alias and exposes a snake_case attribute.  Models also accept their
attribute names so rows read back from the cache can be validated the
same way.

Required keys must have the right type.  Optional fields of the wrong
type are read as missing, so one odd value does not reject the record.
"""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator


def _str_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class PublicationSummary(_Record):
    """One entry of the ``Publications?userId=`` listing."""
    acronym: StrictStr
    title: StrictStr


class Publication(_Record):
    publication_id: StrictInt = Field(alias="PublicationID")
    acronym: StrictStr = Field(alias="Acronym")
    title: StrictStr = Field(alias="Title")


class Topic(_Record):
    topic_key: StrictInt = Field(alias="topicKey")
    topic: StrictStr
    release_num: Optional[int] = Field(default=None, alias="releaseNum")

    @field_validator("release_num", mode="before")
    @classmethod
    def int_or_none(cls, value: Any) -> Optional[int]:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        return None


class Rulebook(_Record):
    topic_key: Optional[StrictInt] = Field(default=None, alias="topicKey")
    rb_key: StrictInt = Field(alias="rbKey")
    rb_name: StrictStr = Field(alias="rbName")
    summary: Optional[str] = None

    @field_validator("summary", mode="before")
    @classmethod
    def text_or_none(cls, value: Any) -> Optional[str]:
        return _str_or_none(value)


class Section(_Record):
    section_key: StrictInt = Field(alias="sectionKey")
    rb_key: Optional[StrictInt] = Field(default=None, alias="rbKey")
    sect_name: StrictStr = Field(alias="sectName")


class Paragraph(_Record):
    para_key: StrictInt = Field(alias="paraKey")
    section_key: Optional[StrictInt] = Field(default=None, alias="sectionKey")
    para_num: Optional[str] = Field(default=None, alias="paraNum")
    question: Optional[str] = None
    guide_note: Optional[str] = Field(default=None, alias="guideNote")
    citation: Optional[str] = None

    @field_validator("para_num", "question", "guide_note", "citation", mode="before")
    @classmethod
    def text_or_none(cls, value: Any) -> Optional[str]:
        return _str_or_none(value)
