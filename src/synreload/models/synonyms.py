from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class RuleFormat(StrEnum):
    SOLR = "solr"
    WORDNET = "wordnet"


class RawEntry(BaseModel):
    """Single record fetched from the source (one row, or one line of a file)."""

    model_config = ConfigDict(frozen=True)

    text: str


class SynonymRule(BaseModel):
    """One line of rule text, tagged with the options it will be parsed under."""

    model_config = ConfigDict(frozen=True)

    text: str
    format: RuleFormat = RuleFormat.SOLR
    expand: bool = True
    lenient: bool = False
