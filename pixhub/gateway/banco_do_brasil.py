"""
Banco do Brasil PIX API gateway.

Speaks the BACEN "cob" (immediate charge) resource over httpx:
  POST   /v2/cob          create a charge
  GET    /v2/cob/{txid}   fetch a charge (404 -> None)
  DELETE /v2/cob/{txid}   cancel a charge
  GET    /v2/cob          list charges by status within a creation window

Authentication is OAuth2 client-credentials. The access token is cached and
refreshed GATEWAY_TOKEN_REFRESH_MARGIN_SECONDS before it expires. HTTP 429 is
retried with full-jitter exponential backoff up to GATEWAY_MAX_RETRIES times;
every other failure surfaces as UpstreamError.
"""

import asyncio
import logging
import time
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Optional

import httpx

from pixhub.config import Settings
from pixhub.errors import UpstreamError
from pixhub.gateway.backoff import sleep_with_backoff
from pixhub.gateway.base import AbstractPaymentGateway
from pixhub.models.base import as_utc, utcnow
from pixhub.models.charge import (
    Charge,
    ChargeRequest,
    gateway_status_name,
    map_charge_status,
)
from pixhub.models.enums import ChargeStatus

logger = logging.getLogger(__name__)


class BancoDoBrasilGateway(AbstractPaymentGateway):
    name = "BancoDoBrasil"

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        missing = settings.missing_bank_credentials()
        if missing:
            raise UpstreamError(f"missing bank gateway configuration: {', '.join(missing)}")

        self._settings = settings
        self._client = httpx.AsyncClient(
            base_url=settings.BB_API_BASE_URL,
            timeout=settings.GATEWAY_TIMEOUT_SECONDS,
            transport=transport,
        )
        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0
        self._token_lock = asyncio.Lock()

    async def aclose(self) -> None:
        await self._client.aclose()

    # --- Authentication ---

    async def _ensure_token(self) -> str:
        async with self._token_lock:
            if self._access_token is None or time.monotonic() >= self._token_expires_at:
                await self._authenticate()
            return self._access_token  # type: ignore[return-value]

    async def _authenticate(self) -> None:
        try:
            response = await self._client.post(
                self._settings.BB_OAUTH_URL,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self._settings.BB_CLIENT_ID,
                    "client_secret": self._settings.BB_CLIENT_SECRET,
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
            response.raise_for_status()
            token = response.json()
            self._access_token = token["access_token"]
            expires_in = float(token.get("expires_in", 0))
        except (httpx.HTTPError, KeyError, ValueError) as exc:
            self._access_token = None
            logger.error(f"[{self.name}] Authentication failed: {type(exc).__name__}: {exc}")
            raise UpstreamError("authentication with the bank API failed") from exc

        self._token_expires_at = (
            time.monotonic() + expires_in - self._settings.GATEWAY_TOKEN_REFRESH_MARGIN_SECONDS
        )
        logger.info(f"[{self.name}] Authenticated, token valid for {expires_in:.0f}s")

    # --- Transport ---

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> httpx.Response:
        max_retries = self._settings.GATEWAY_MAX_RETRIES
        for attempt in range(max_retries + 1):
            if attempt > 0:
                delay = await sleep_with_backoff(
                    attempt - 1,
                    base=self._settings.GATEWAY_BACKOFF_BASE_SECONDS,
                    cap=self._settings.GATEWAY_BACKOFF_MAX_SECONDS,
                )
                logger.info(f"[{self.name}] {method} {path} backoff retry #{attempt} after {delay:.2f}s")

            token = await self._ensure_token()
            headers = {
                "Authorization": f"Bearer {token}",
                "developer-application-key": self._settings.BB_DEVELOPER_APPLICATION_KEY,
            }
            try:
                response = await self._client.request(
                    method, path, json=json, params=params, headers=headers
                )
            except httpx.HTTPError as exc:
                logger.error(f"[{self.name}] {method} {path} transport error: {type(exc).__name__}")
                raise UpstreamError(f"bank API unreachable: {type(exc).__name__}") from exc

            logger.info(f"[{self.name}] {method} {path} -> {response.status_code}")

            if response.status_code == 401:
                # token revoked early; next call re-authenticates
                self._access_token = None
                raise UpstreamError("bank API rejected the access token")
            if response.status_code == 429 and attempt < max_retries:
                continue
            return response

        return response

    @staticmethod
    def _raise_for_status(response: httpx.Response, action: str) -> None:
        if response.is_success:
            return
        detail = _safe_detail(response)
        logger.error(f"Bank API failed to {action}: status={response.status_code} detail={detail}")
        raise UpstreamError(f"bank API failed to {action} (status {response.status_code})")

    # --- Charges ---

    async def create_charge(self, request: ChargeRequest) -> Charge:
        payload = {
            "calendario": {"expiracao": request.expiration_minutes * 60},
            "devedor": {"nome": request.payer_name, "cpf": request.payer_id},
            "valor": {"original": f"{request.amount:.2f}"},
            "chave": self._settings.BB_PIX_KEY,
            "solicitacaoPagador": request.description,
        }
        response = await self._request("POST", "/v2/cob", json=payload)
        self._raise_for_status(response, "create charge")
        return _to_charge(
            response.json(),
            payer_email=request.payer_email,
            description=request.description,
        )

    async def get_charge(self, external_tx_id: str) -> Optional[Charge]:
        response = await self._request("GET", f"/v2/cob/{external_tx_id}")
        if response.status_code == 404:
            return None
        self._raise_for_status(response, "fetch charge")
        # the API does not echo the payer email
        return _to_charge(response.json(), payer_email="")

    async def list_charges(self, status: ChargeStatus) -> list[Charge]:
        # the API requires a creation window; the widest expiry bounds it
        end = utcnow()
        start = end - timedelta(minutes=self._settings.CHARGE_MAX_EXPIRATION_MINUTES)
        params = {
            "inicio": start.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "fim": end.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "status": gateway_status_name(status),
        }
        response = await self._request("GET", "/v2/cob", params=params)
        self._raise_for_status(response, "list charges")
        cobs = _safe_detail(response)
        if not isinstance(cobs, dict):
            raise UpstreamError("unexpected charge list payload from bank API")
        charges = [_to_charge(item, payer_email="") for item in cobs.get("cobs", [])]
        return sorted(charges, key=lambda c: c.created_at)

    async def cancel_charge(self, external_tx_id: str) -> None:
        response = await self._request("DELETE", f"/v2/cob/{external_tx_id}")
        self._raise_for_status(response, "cancel charge")


def _safe_detail(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text[:200]


def _parse_timestamp(raw: Optional[str]) -> datetime:
    if not raw:
        return utcnow()
    return as_utc(datetime.fromisoformat(raw.replace("Z", "+00:00")))


def _to_charge(data: dict, payer_email: str, description: Optional[str] = None) -> Charge:
    try:
        calendar = data["calendario"]
        created_at = _parse_timestamp(calendar.get("criacao"))
        debtor = data.get("devedor") or {}
        return Charge(
            id=data["txid"],
            external_tx_id=data["txid"],
            location_ref=(data.get("loc") or {}).get("location", data.get("location", "")),
            status=map_charge_status(data.get("status")),
            amount=Decimal(data["valor"]["original"]),
            payer_name=debtor.get("nome", ""),
            payer_id=debtor.get("cpf", ""),
            payer_email=payer_email,
            description=description if description is not None else data.get("solicitacaoPagador", ""),
            expires_at=created_at + timedelta(seconds=int(calendar["expiracao"])),
            created_at=created_at,
            updated_at=utcnow(),
        )
    except (KeyError, TypeError, ValueError, ArithmeticError) as exc:
        raise UpstreamError(f"unexpected charge payload from bank API: {exc}") from exc
