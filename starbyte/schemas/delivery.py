"""
Delivery resolution schemas: who is buying, what they bought, and what they get.
"""
from typing import Any, Dict, List, Optional, Union, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..utils.exceptions import ValidationError
from .purchase import describe_validation_error


class StarLite(BaseModel):
    """The buyer profile shared with third-party fulfillment endpoints."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    star_name: Optional[str] = Field(default=None, alias='starName')
    display_name: Optional[str] = Field(default=None, alias='displayName')
    email: Optional[str] = None
    avatar: Optional[str] = None
    bio: Optional[str] = None

    @classmethod
    def coerce(cls, value: Any) -> 'StarLite':
        if isinstance(value, cls):
            return value
        return cls.model_validate(value or {})

    @property
    def name(self) -> Optional[str]:
        return self.display_name or self.star_name

    def fulfillment_payload(self) -> Dict[str, Optional[str]]:
        return {
            'starName': self.star_name or self.display_name,
            'email': self.email,
            'avatar': self.avatar,
            'bio': self.bio,
        }


class RewardSummary(BaseModel):
    """Reward fields the checkout needs for the receipt."""

    model_config = ConfigDict(extra='ignore')

    id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[Union[str, List[str]]] = None
    delivery_instructions: Optional[str] = None
    price: Optional[int] = None

    @field_validator('id', mode='before')
    @classmethod
    def _stringify_id(cls, value):
        return value if value is None or isinstance(value, str) else str(value)

    @classmethod
    def coerce(cls, value: Any) -> Optional['RewardSummary']:
        if value is None or isinstance(value, cls):
            return value
        return cls.model_validate(value)

    @property
    def primary_image(self) -> Optional[str]:
        if isinstance(self.image_url, list):
            return self.image_url[0] if self.image_url else None
        return self.image_url


class _Resolved(BaseModel):
    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)

    @property
    def detail(self) -> Optional[Dict[str, str]]:
        """Redemption detail to embed in the receipt, if any."""
        return None


class ResolvedCode(_Resolved):
    ok: Literal[True] = True
    type: Literal['code'] = 'code'
    code: str

    @property
    def detail(self) -> Optional[Dict[str, str]]:
        return {'code': self.code}


class ResolvedLink(_Resolved):
    ok: Literal[True] = True
    type: Literal['link'] = 'link'
    link: str

    @property
    def detail(self) -> Optional[Dict[str, str]]:
        return {'link': self.link}


class ResolvedFetch(_Resolved):
    ok: Literal[True] = True
    type: Literal['fetch'] = 'fetch'
    message: Optional[str] = None


class ResolutionFailure(_Resolved):
    ok: Literal[False] = False
    message: str


ResolvedDelivery = Union[ResolvedCode, ResolvedLink, ResolvedFetch, ResolutionFailure]


FULFILLMENT_KEYS = ('code', 'link')


class _FulfillmentData(BaseModel):
    """The single nested level a fulfillment response may use."""

    model_config = ConfigDict(extra='ignore')

    code: Optional[str] = None
    link: Optional[str] = None

    @field_validator('code', 'link', mode='before')
    @classmethod
    def _strings_only(cls, value):
        return value if isinstance(value, str) else None


class FulfillmentResponse(_FulfillmentData):
    """
    The documented response of a fulfillment endpoint:
    {"code": "..."} / {"link": "..."}, optionally nested under "data".

    Values that are not strings are dropped rather than trusted. Only one
    level of "data" is read; anything below it is never validated.
    """

    data: Optional[_FulfillmentData] = None

    @field_validator('data', mode='before')
    @classmethod
    def _objects_only(cls, value):
        if not isinstance(value, dict):
            return None
        return {key: value.get(key) for key in FULFILLMENT_KEYS}

    @classmethod
    def from_body(cls, body: Any) -> 'FulfillmentResponse':
        if not isinstance(body, dict):
            return cls()
        return cls.model_validate({key: body.get(key) for key in FULFILLMENT_KEYS + ('data',)})

    def _lookup(self, key: str) -> Optional[str]:
        nested = getattr(self.data, key) if self.data is not None else None
        value = nested if nested is not None else getattr(self, key)
        return value or None

    @property
    def redemption_code(self) -> Optional[str]:
        return self._lookup('code')

    @property
    def redemption_link(self) -> Optional[str]:
        return self._lookup('link')


def parse_star(value: Any) -> StarLite:
    """
    Validate a buyer profile supplied by a client.

    Raises:
        ValidationError: If the profile is not an object or a field has the wrong type
    """
    try:
        return StarLite.coerce(value)
    except PydanticValidationError as e:
        raise ValidationError(f"Malformed star ({describe_validation_error(e)})", field='star') from e


def parse_reward_summary(value: Any) -> Optional[RewardSummary]:
    """
    Validate a reward summary supplied by a client.

    Raises:
        ValidationError: If the summary is not an object or a field has the wrong type
    """
    try:
        return RewardSummary.coerce(value)
    except PydanticValidationError as e:
        raise ValidationError(f"Malformed reward ({describe_validation_error(e)})", field='reward') from e
