"""REST transport for the swap server with retry, decimal coercion and error envelopes."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from email.utils import parsedate_to_datetime
from time import sleep
from typing import Any

import requests

from swapdesk.errors import GatewayError, ServerError
from swapdesk.numeric import fmt, round18, to_decimal


def coerce_numbers(data: Any) -> Any:
    """Recursively turn numeric-looking values into Decimal.

    A string converts only when its own text starts with the rendered number,
    so ids with leading zeros, exponent forms and ``0x`` hex stay strings.
    """
    if isinstance(data, str):
        if data.startswith("0x"):
            return data
        numeric = to_decimal(data)
        if numeric.is_nan():
            return data
        try:
            text = fmt(round18(numeric))
        except InvalidOperation:
            return data
        if data.startswith(text):
            return Decimal(text)
        return data
    if data is None or isinstance(data, bool):
        return data
    if isinstance(data, (int, float)):
        return to_decimal(data)
    if isinstance(data, Mapping):
        return {key: coerce_numbers(value) for key, value in data.items()}
    if isinstance(data, (list, tuple)):
        return [coerce_numbers(item) for item in data]
    return data


def unwrap(payload: Any) -> Any:
    """Return the coerced ``result`` of a response, raising on an ``error`` envelope."""
    if not isinstance(payload, Mapping):
        return coerce_numbers(payload)
    error = payload.get("error")
    if error:
        raise ServerError(str(error))
    return coerce_numbers(payload.get("result"))


def to_jsonable(value: Any) -> Any:
    """Prepare request bodies: decimals become plain decimal strings."""
    if isinstance(value, Decimal):
        return fmt(value)
    if isinstance(value, Mapping):
        return {key: to_jsonable(item) for key, item in value.items() if item is not None}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(item) for item in value]
    return value


def flatten_params(args: Mapping[str, Any], prefix: str = "") -> list[tuple[str, str]]:
    """Encode nested query arguments as ``key[sub][0][field]`` pairs."""
    pairs: list[tuple[str, str]] = []
    for key, value in args.items():
        full_key = f"{prefix}[{key}]" if prefix else str(key)
        if isinstance(value, (list, tuple)):
            for index, item in enumerate(value):
                if isinstance(item, Mapping):
                    for sub_key, sub_value in item.items():
                        pairs.append((f"{full_key}[{index}][{sub_key}]", _param_text(sub_value)))
                else:
                    pairs.append((full_key, _param_text(item)))
        elif isinstance(value, Mapping):
            pairs.extend(flatten_params(value, full_key))
        elif value is not None:
            pairs.append((full_key, _param_text(value)))
    return pairs


def _param_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        return fmt(value)
    return str(value)


class SwapRestClient:
    """Blocking JSON-over-HTTPS client; call it from a worker thread in async code."""

    def __init__(
        self,
        base_url: str,
        timeout: int = 20,
        max_retries: int = 4,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    def request(self, method: str, location: str, args: Mapping[str, Any] | None = None) -> Any:
        """Perform one call and return its unwrapped, decimal-coerced result."""
        verb = method.upper()
        if verb == "GET" or verb == "DELETE":
            payload = self._request(verb, location, params=flatten_params(args or {}))
        else:
            payload = self._request(verb, location, json=to_jsonable(args or {}))
        return unwrap(payload)

    def close(self) -> None:
        self.session.close()

    def _request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: list[tuple[str, str]] | None = None,
    ) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        last_error: Exception | None = None
        for attempt in range(1, self.max_retries + 1):
            try:
                response = self.session.request(
                    method=method,
                    url=url,
                    json=json,
                    params=params or None,
                    timeout=self.timeout,
                )
            except requests.RequestException as exc:
                last_error = exc
                if attempt == self.max_retries:
                    break
                sleep(float(attempt))
                continue

            if response.status_code == 429:
                if attempt == self.max_retries:
                    detail = response.text.strip() or "Rate limit"
                    raise GatewayError(f"Swap API error 429 for {path}: {detail}")
                sleep(self._retry_after_seconds(response.headers, attempt))
                continue

            if response.status_code >= 500:
                if attempt == self.max_retries:
                    detail = response.text.strip() or "Server error"
                    raise GatewayError(
                        f"Swap API error {response.status_code} for {path}: {detail}"
                    )
                sleep(float(attempt))
                continue

            try:
                payload = response.json()
            except ValueError as exc:
                if response.status_code >= 400:
                    detail = response.text.strip() or "Request rejected"
                    raise GatewayError(
                        f"Swap API error {response.status_code} for {path}: {detail}"
                    ) from exc
                raise GatewayError(f"Swap response for {path} was not valid JSON") from exc

            if response.status_code >= 400 and not (isinstance(payload, Mapping) and payload.get("error")):
                raise GatewayError(f"Swap API error {response.status_code} for {path}: {payload}")
            return payload

        if last_error is not None:
            raise GatewayError(f"Swap request failed for {path}: {last_error}") from last_error
        raise GatewayError(f"Swap request failed for {path}")

    @staticmethod
    def _retry_after_seconds(headers: Mapping[str, str], attempt: int) -> float:
        retry_after = headers.get("Retry-After")
        if retry_after:
            try:
                return max(float(retry_after), 1.0)
            except ValueError:
                try:
                    dt = parsedate_to_datetime(retry_after)
                except (TypeError, ValueError):
                    dt = None
                if dt is not None:
                    if dt.tzinfo is None:
                        dt = dt.replace(tzinfo=UTC)
                    delta = (dt - datetime.now(tz=UTC)).total_seconds()
                    return max(delta, 1.0)
        return max(float(attempt), 1.0)
