"""
Boundary schemas for purchase results, delivery resolution and receipts.
"""
from .purchase import (
    HTTP_METHODS,
    FetchDescriptor,
    CodePurchase,
    LinkPurchase,
    FetchPurchase,
    PurchaseFailure,
    PurchaseResult,
    parse_purchase_result,
    describe_validation_error,
)
from .delivery import (
    StarLite,
    RewardSummary,
    ResolvedCode,
    ResolvedLink,
    ResolvedFetch,
    ResolutionFailure,
    ResolvedDelivery,
    FulfillmentResponse,
    parse_star,
    parse_reward_summary,
)
from .receipt import RewardDetail, ReceiptLineItem
