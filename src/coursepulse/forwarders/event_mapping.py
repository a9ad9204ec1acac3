"""Mapping of platform events onto Meta standard events."""

from typing import Any, Dict, Optional

from coursepulse.events import Events
from coursepulse.forwarders.meta import ConversionEvent


def _cents_to_units(amount: Any) -> float:
    return amount / 100 if isinstance(amount, (int, float)) and amount else 0


def _content_ids(properties: Dict[str, Any], *keys: str) -> list:
    for key in keys:
        if properties.get(key):
            return [properties[key]]
    return []


def map_event_to_meta(
    event_name: str, properties: Dict[str, Any]
) -> Optional[tuple[str, Dict[str, Any]]]:
    """
    Return the (standard event name, custom data) pair for an app event.

    Amounts in `properties` are in cents. Events without a standard
    counterpart return None.
    """
    if event_name in (Events.LOGIN_SUCCESS, Events.ACTIVATION_COMPLETE):
        return "CompleteRegistration", {
            "status": "success",
            "method": properties.get("method") or "email",
        }

    if event_name == Events.SIGNUP_START:
        return "Lead", {
            "content_name": "Signup Started",
            "content_category": "activation",
        }

    if event_name in (Events.COURSE_PREVIEW, Events.PRICING_VIEW):
        return "ViewContent", {
            "content_ids": _content_ids(properties, "course_id"),
            "content_type": "product",
            "content_name": properties.get("title") or properties.get("course_id"),
        }

    if event_name == Events.CHECKOUT_STARTED:
        return "InitiateCheckout", {
            "content_ids": _content_ids(properties, "course_id"),
            "value": _cents_to_units(properties.get("amount")),
            "currency": properties.get("currency") or "USD",
        }

    if event_name == Events.PURCHASE_COMPLETED:
        return "Purchase", {
            "content_ids": _content_ids(properties, "course_id", "product_id"),
            "value": _cents_to_units(properties.get("amount")),
            "currency": properties.get("currency") or "USD",
            "content_type": "product",
        }

    if event_name == Events.LANDING_VIEW:
        # Only ad-driven landings count as leads.
        if properties.get("utm_source") or properties.get("utm_campaign"):
            return "Lead", {
                "content_name": "Landing Page Visit",
                "content_category": "acquisition",
                "source": properties.get("utm_source"),
                "campaign": properties.get("utm_campaign"),
            }
        return None

    if event_name == Events.LESSON_COMPLETED:
        return "CompleteRegistration", {
            "status": "lesson_completed",
            "content_name": properties.get("lesson_id"),
        }

    if event_name == Events.COURSE_PUBLISHED:
        return "Lead", {
            "content_name": "Course Published",
            "content_category": "core_value",
            "course_id": properties.get("course_id"),
        }

    if event_name == Events.SUBSCRIPTION_STARTED:
        value = _cents_to_units(properties.get("amount"))
        return "Subscribe", {
            "value": value,
            "currency": "USD",
            "predicted_ltv": value * 12,
        }

    return None


def to_conversion_event(
    event_name: str, properties: Dict[str, Any]
) -> Optional[ConversionEvent]:
    """
    Build the conversions API event for a tracked event.

    Only events that map to a standard event and carry the `event_id` the
    browser pixel used are relayed, so that the platform can deduplicate them.
    """
    mapped = map_event_to_meta(event_name, properties)
    event_id = properties.get("event_id")
    if mapped is None or not event_id:
        return None
    meta_name, custom_data = mapped
    email = properties.get("email")
    return ConversionEvent(
        event_name=meta_name,
        event_id=str(event_id),
        custom_data=custom_data,
        email=email if isinstance(email, str) else None,
    )
