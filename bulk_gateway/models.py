from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator


class Document(BaseModel):
    """A document read back from the engine.

    Engine metadata lives in the declared fields (wire names ``_index``,
    ``_id``, ...). The stored ``_source`` is kept whole in ``source``; fields
    that do not clash with a declared name are also reachable as attributes,
    so ``doc.character`` works for a stored ``character`` field.
    """

    model_config = ConfigDict(extra="allow")

    index: Optional[str] = Field(default=None, alias="_index")
    id: Optional[str] = Field(default=None, alias="_id")
    version: Optional[int] = Field(default=None, alias="_version")
    seq_no: Optional[int] = Field(default=None, alias="_seq_no")
    primary_term: Optional[int] = Field(default=None, alias="_primary_term")
    found: Optional[bool] = Field(default=None, alias="_found")
    score: Optional[float] = Field(default=None, alias="_score")

    _content: Optional[Dict[str, Any]] = PrivateAttr(default=None)

    def with_content(self, content: Dict[str, Any]):
        """Attach the complete stored document, including fields named like result fields."""
        self._content = dict(content)
        return self

    @property
    def source(self) -> Dict[str, Any]:
        """Content fields only, without engine metadata."""
        if self._content is not None:
            return dict(self._content)
        return dict(self.model_extra or {})

    def get(self, field: str, default: Any = None) -> Any:
        return self.source.get(field, default)

    def to_dict(self) -> Dict[str, Any]:
        """Wire shape: content plus aliased metadata; metadata wins on a clash, unset metadata is omitted."""
        metadata = {}
        for name, field in type(self).model_fields.items():
            value = getattr(self, name)
            if value is not None:
                metadata[field.alias or name] = value
        return {**self.source, **metadata}


class ActionResult(Document):
    """Normalized outcome of a single engine operation."""

    status_code: int = Field(alias="_statusCode")
    result: Optional[str] = None  # created, updated, deleted, found, not_found, error
    total: Optional[int] = None
    updated: Optional[int] = None
    deleted: Optional[int] = None
    exists: Optional[bool] = None
    error: Optional[Any] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class Script(BaseModel):
    lang: str = "painless"
    source: str
    params: Optional[Dict[str, Any]] = None


class UpdateSpec(BaseModel):
    """Either a partial document merge or a script, never both.

    Extra keys (``query`` for update-by-query, ``upsert``,
    ``doc_as_upsert``, ...) are forwarded to the engine untouched.
    """

    model_config = ConfigDict(extra="allow")

    doc: Optional[Dict[str, Any]] = None
    script: Optional[Script] = None

    @model_validator(mode="after")
    def check_exactly_one_variant(self):
        if (self.doc is None) == (self.script is None):
            raise ValueError("update must specify exactly one of 'doc' or 'script'")
        return self

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = dict(self.model_extra or {})
        if self.doc is not None:
            body["doc"] = self.doc
        else:
            body["script"] = self.script.model_dump(exclude_none=True)
        return body
