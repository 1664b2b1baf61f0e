"""
Purchase Authority result schemas.

A purchase attempt produces exactly one PurchaseResult:

    {"success": false, "error": "Insufficient stardust"}
    {"success": true, "type": "code",  "data": {"code": "..."},  "receipt_id": "..."}
    {"success": true, "type": "link",  "data": {"link": "..."},  "receipt_id": "..."}
    {"success": true, "type": "fetch", "data": {"fetch": ...},   "receipt_id": "..."}

The `fetch` payload is either a bare URL string or a FetchDescriptor object.
Both are normalized to FetchDescriptor here so the resolver only ever sees
one shape.
"""
from typing import Annotated, Any, Dict, Optional, Union, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..utils.exceptions import ValidationError

HTTP_METHODS = ('GET', 'POST', 'PUT', 'PATCH', 'DELETE')


class FetchDescriptor(BaseModel):
    """Third-party fulfillment call configured by the reward's lister."""

    model_config = ConfigDict(extra='forbid')

    url: str = ''
    method: str = 'POST'
    headers: Dict[str, str] = Field(default_factory=dict)

    @field_validator('url', mode='before')
    @classmethod
    def _strip_url(cls, value):
        if value is None:
            return ''
        return value.strip() if isinstance(value, str) else value

    @field_validator('method', mode='before')
    @classmethod
    def _normalize_method(cls, value):
        if value is None or value == '':
            return 'POST'
        if not isinstance(value, str):
            return value
        method = value.strip().upper()
        if method not in HTTP_METHODS:
            raise ValueError(f"method must be one of {', '.join(HTTP_METHODS)}")
        return method

    @field_validator('headers', mode='before')
    @classmethod
    def _default_headers(cls, value):
        return {} if value is None else value

    @classmethod
    def coerce(cls, value: Any) -> 'FetchDescriptor':
        """Accept a bare URL string, a mapping, or None."""
        if isinstance(value, cls):
            return value
        if value is None:
            return cls()
        if isinstance(value, str):
            return cls(url=value)
        return cls.model_validate(value)


class CodeData(BaseModel):
    code: str = Field(min_length=1)


class LinkData(BaseModel):
    link: str = Field(min_length=1)


class FetchData(BaseModel):
    fetch: FetchDescriptor = Field(default_factory=FetchDescriptor)

    @field_validator('fetch', mode='before')
    @classmethod
    def _coerce_fetch(cls, value):
        return FetchDescriptor.coerce(value)


class PurchaseFailure(BaseModel):
    """Purchase rejected by the Purchase Authority."""

    success: Literal[False] = False
    error: Optional[str] = None


class _PurchaseSuccess(BaseModel):
    success: Literal[True] = True
    receipt_id: Optional[str] = None

    @field_validator('receipt_id', mode='before')
    @classmethod
    def _stringify_receipt(cls, value):
        if value is None or isinstance(value, str):
            return value
        return str(value)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class CodePurchase(_PurchaseSuccess):
    type: Literal['code'] = 'code'
    data: CodeData


class LinkPurchase(_PurchaseSuccess):
    type: Literal['link'] = 'link'
    data: LinkData


class FetchPurchase(_PurchaseSuccess):
    type: Literal['fetch'] = 'fetch'
    data: FetchData = Field(default_factory=FetchData)


PurchaseSuccess = Annotated[
    Union[CodePurchase, LinkPurchase, FetchPurchase],
    Field(discriminator='type'),
]
PurchaseResult = Union[CodePurchase, LinkPurchase, FetchPurchase, PurchaseFailure]

_success_adapter = TypeAdapter(PurchaseSuccess)


def describe_validation_error(exc: PydanticValidationError) -> str:
    first = exc.errors()[0]
    location = '.'.join(str(part) for part in first.get('loc', ()))
    return f"{location}: {first.get('msg')}" if location else first.get('msg', 'invalid value')


def parse_purchase_result(payload: Any) -> PurchaseResult:
    """
    Validate a raw purchase result.

    Anything whose `success` is not literally true is a failure. Successful
    results must carry a known `type` and a matching `data` object.

    Raises:
        ValidationError: If the payload is not an object or a success is malformed
    """
    if isinstance(payload, (CodePurchase, LinkPurchase, FetchPurchase, PurchaseFailure)):
        return payload
    if not isinstance(payload, dict):
        raise ValidationError("Purchase result must be an object", field='purchase')

    if payload.get('success') is not True:
        error = payload.get('error')
        return PurchaseFailure(error=error if isinstance(error, str) else None)

    try:
        return _success_adapter.validate_python(payload)
    except PydanticValidationError as e:
        raise ValidationError(f"Malformed purchase result ({describe_validation_error(e)})", field='purchase') from e
