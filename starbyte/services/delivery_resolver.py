"""
Delivery Resolver for purchased rewards.

Turns a successful PurchaseResult into something the buyer can use:
- code:  passed through unchanged, no network call
- link:  passed through unchanged, no network call
- fetch: one HTTP call to the lister's fulfillment endpoint; a code or link
         found in the response upgrades the result to that type

Resolution is attempted exactly once. Transport failures are reported as
{ok: false, message} and never raised to the caller.
"""
import logging
from typing import Any, Optional

import requests

from ..schemas import (
    CodePurchase,
    LinkPurchase,
    FetchPurchase,
    FetchDescriptor,
    PurchaseFailure,
    PurchaseResult,
    StarLite,
    ResolvedCode,
    ResolvedLink,
    ResolvedFetch,
    ResolutionFailure,
    ResolvedDelivery,
    FulfillmentResponse,
)

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT = 10.0
NO_FETCH_URL_MESSAGE = 'No fetch URL provided'
FETCH_FAILED_MESSAGE = 'Fetch failed'
FETCH_PROCESSED_MESSAGE = 'Fetch processed'


class DeliveryResolver:
    """
    Resolves purchased rewards into redemption artifacts.

    Usage:
        resolver = DeliveryResolver(timeout=10)
        resolved = resolver.resolve(purchase, star)
        resolved.to_dict()  # {'ok': True, 'type': 'code', 'code': 'WELCOME20'}
    """

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = DEFAULT_FETCH_TIMEOUT):
        """
        Args:
            session: Optional requests session (injected in tests)
            timeout: Seconds to wait on a fulfillment endpoint
        """
        self.session = session or requests.Session()
        self.timeout = timeout

    def resolve(self, purchase: PurchaseResult, star: Any = None) -> ResolvedDelivery:
        """
        Resolve a purchase into a deliverable.

        Args:
            purchase: Validated purchase result
            star: Buyer profile (StarLite or mapping) sent to fetch endpoints

        Returns:
            ResolvedDelivery variant
        """
        if isinstance(purchase, PurchaseFailure):
            return ResolutionFailure(message=purchase.error or 'Invalid purchase')
        if isinstance(purchase, CodePurchase):
            return ResolvedCode(code=purchase.data.code)
        if isinstance(purchase, LinkPurchase):
            return ResolvedLink(link=purchase.data.link)
        if isinstance(purchase, FetchPurchase):
            return self.resolve_fetch(purchase.data.fetch, StarLite.coerce(star))
        return ResolutionFailure(message='Invalid purchase')

    def resolve_fetch(self, descriptor: Any, star: StarLite) -> ResolvedDelivery:
        """Call a third-party fulfillment endpoint and interpret its reply."""
        descriptor = FetchDescriptor.coerce(descriptor)
        if not descriptor.url:
            return ResolutionFailure(message=NO_FETCH_URL_MESSAGE)

        headers = {'Content-Type': 'application/json', **descriptor.headers}
        body = None if descriptor.method == 'GET' else star.fulfillment_payload()

        try:
            response = self.session.request(
                descriptor.method,
                descriptor.url,
                headers=headers,
                json=body,
                timeout=self.timeout,
            )
        except Exception as e:
            logger.warning(f"Fulfillment call to {descriptor.url} failed: {e}")
            return ResolutionFailure(message=str(e) or FETCH_FAILED_MESSAGE)

        if not response.ok:
            logger.warning(
                f"Fulfillment endpoint {descriptor.url} answered {response.status_code}"
            )

        reply = self._read_reply(response, descriptor.url)
        if reply.redemption_code:
            return ResolvedCode(code=reply.redemption_code)
        if reply.redemption_link:
            return ResolvedLink(link=reply.redemption_link)
        return ResolvedFetch(message=FETCH_PROCESSED_MESSAGE)

    def _read_reply(self, response: requests.Response, url: str) -> FulfillmentResponse:
        """Interpret a fulfillment reply; unreadable bodies become an empty reply, never an exception."""
        try:
            parsed = response.json()
        except Exception as e:
            logger.info(f"Fulfillment endpoint {url} returned a non-JSON body ({type(e).__name__})")
            parsed = {'ok': response.ok, 'status': response.status_code}

        try:
            return FulfillmentResponse.from_body(parsed)
        except Exception as e:
            logger.warning(f"Unreadable fulfillment reply from {url}: {type(e).__name__}")
            return FulfillmentResponse()
