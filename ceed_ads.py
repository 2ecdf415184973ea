"""
CeedAds contextual advertising SDK binding: initialize, request ads, track events.
Endpoint and credentials from environment only: CEED_ADS_API_URL, CEED_ADS_API_KEY.
Never hardcode or log the key. Without CEED_ADS_API_URL no client is built and
the demo runs without ads.
"""
import logging
import os
from typing import Iterable, List, Optional, Tuple

import httpx
from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

_DEFAULT_APP_ID = "test-app"
_DEFAULT_TIMEOUT = 10.0

# Ad formats the SDK can render
AD_FORMATS = ("action_card", "lead_gen", "static", "followup")

# impression for every format; click (action_card, static), submit (lead_gen), option_tap (followup)
EVENT_TYPES = ("impression", "click", "submit", "option_tap")


class CeedAdsError(Exception):
    """Any failure talking to the ad SDK backend."""


class AdOption(BaseModel):
    id: str
    label: str


class AdRecord(BaseModel):
    id: str
    title: str
    description: str = ""
    image_url: Optional[str] = None
    action_url: str = ""
    format: str = "action_card"
    cta_text: Optional[str] = None
    options: List[AdOption] = []


class CeedAdsClient:
    """Thin HTTP client for the ad SDK backend."""

    def __init__(
        self,
        app_id: str,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = _DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.app_id = app_id
        self.base_url = base_url.rstrip("/")
        headers = {"Accept": "application/json"}
        if api_key:
            headers["X-API-Key"] = api_key
        self._http = httpx.Client(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def _post(self, path: str, body: dict) -> httpx.Response:
        try:
            r = self._http.post(path, json=body)
            r.raise_for_status()
            return r
        except httpx.HTTPStatusError as e:
            raise CeedAdsError(f"{path} returned HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise CeedAdsError(f"{path} failed: {e}") from e
        except RuntimeError as e:
            # httpx raises RuntimeError once the client has been closed
            raise CeedAdsError(f"{path} not sent: {e}") from e

    def request_ad(
        self,
        conversation_id: str,
        message_id: str,
        context_text: str,
        formats: Optional[Iterable[str]] = None,
    ) -> Tuple[Optional[AdRecord], Optional[str]]:
        """
        Ask the SDK for an ad matching context_text.
        Returns (ad, request_id); ad is None when nothing matched. Raises CeedAdsError.
        """
        body = {
            "appId": self.app_id,
            "conversationId": conversation_id,
            "messageId": message_id,
            "contextText": context_text,
        }
        if formats:
            body["formats"] = sorted(formats)
        logger.info(
            "SDK: requestAd(conversationId=%s, messageId=%s, formats=%s)",
            conversation_id, message_id, body.get("formats"),
        )

        r = self._post("/ads/request", body)
        if r.status_code == 204 or not r.content:
            return None, None
        try:
            data = r.json()
        except ValueError as e:
            raise CeedAdsError("ad response is not JSON") from e
        if not isinstance(data, dict):
            raise CeedAdsError("ad response has unexpected shape")

        request_id = data.get("requestId")
        raw_ad = data.get("ad")
        if not raw_ad:
            return None, request_id
        try:
            ad = AdRecord(
                id=raw_ad["id"],
                title=raw_ad.get("title") or "",
                description=raw_ad.get("description") or "",
                image_url=raw_ad.get("imageUrl"),
                action_url=raw_ad.get("actionUrl") or "",
                format=raw_ad.get("format") or "action_card",
                cta_text=raw_ad.get("ctaText"),
                options=[AdOption(**o) for o in (raw_ad.get("options") or [])],
            )
        except (KeyError, TypeError, ValidationError) as e:
            raise CeedAdsError(f"malformed ad payload: {e}") from e
        return ad, request_id

    def track_event(
        self,
        event_type: str,
        ad_id: str,
        request_id: Optional[str] = None,
        payload: Optional[dict] = None,
    ) -> None:
        """Report an ad interaction. Raises ValueError for unknown types, CeedAdsError on failure."""
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type: {event_type}")
        logger.info("SDK: trackEvent(type=%s, adId=%s, requestId=%s)", event_type, ad_id, request_id)
        self._post(
            "/events",
            {
                "appId": self.app_id,
                "type": event_type,
                "adId": ad_id,
                "requestId": request_id,
                "payload": payload or {},
            },
        )


_client: Optional[CeedAdsClient] = None


def _timeout_from_env() -> float:
    raw = os.environ.get("CEED_ADS_TIMEOUT")
    if not raw:
        return _DEFAULT_TIMEOUT
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid CEED_ADS_TIMEOUT=%r", raw)
        return _DEFAULT_TIMEOUT


def initialize(app_id: Optional[str] = None) -> Optional[CeedAdsClient]:
    """Build the process-wide client from environment. Returns None if no endpoint is configured."""
    global _client
    shutdown()
    app_id = app_id or os.environ.get("CEED_ADS_APP_ID") or _DEFAULT_APP_ID
    base_url = os.environ.get("CEED_ADS_API_URL")
    logger.info("SDK: initialize(appId=%s)", app_id)
    if not base_url:
        logger.info("CEED_ADS_API_URL not set - ads disabled")
        return None
    _client = CeedAdsClient(
        app_id=app_id,
        base_url=base_url,
        api_key=os.environ.get("CEED_ADS_API_KEY"),
        timeout=_timeout_from_env(),
    )
    return _client


def get_client() -> Optional[CeedAdsClient]:
    return _client


def shutdown() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None
