"""
Transaction Source using Plaid

This service handles:
1. Resolving the access token of the linked bank item
2. Fetching transactions for a date range (all pages)
3. Fetching the accounts behind the token
4. Converting Plaid records into our Transaction / Account models

The Plaid SDK is blocking; every call runs in a worker thread so the
event loop (timer, signal handling, control surface) stays responsive.

Errors from the SDK or the transport become UpstreamFetchError.
There is no retry here: a failed fetch fails the run.
"""

import asyncio
import json
from datetime import date
from decimal import Decimal
from typing import Any, Optional

import plaid
from plaid.api import plaid_api
from plaid.model.accounts_get_request import AccountsGetRequest
from plaid.model.transactions_get_request import TransactionsGetRequest
from plaid.model.transactions_get_request_options import TransactionsGetRequestOptions

from budget_pal.config.settings import PlaidSettings
from budget_pal.errors import ConfigurationError, UpstreamFetchError
from budget_pal.models.spending import Account, Transaction
from budget_pal.services.aggregator.interface import TransactionSource
from budget_pal.telemetry import get_logger

logger = get_logger(__name__)

PLAID_HOSTS = {
    "sandbox": plaid.Environment.Sandbox,
    "production": plaid.Environment.Production,
}


def _plaid_error_code(error: plaid.ApiException) -> Optional[str]:
    """Pull Plaid's `error_code` out of an ApiException body, if any."""
    try:
        body = json.loads(error.body or "{}")
    except (TypeError, ValueError):
        return None
    return body.get("error_code") if isinstance(body, dict) else None


def _enum_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(getattr(value, "value", value))


class PlaidTransactionService(TransactionSource):
    """
    Plaid-backed transaction source.

    Args:
        settings: Plaid configuration
        client: Pre-built PlaidApi (tests); created lazily otherwise
    """

    def __init__(
        self,
        settings: PlaidSettings,
        client: Optional[plaid_api.PlaidApi] = None,
    ):
        self._settings = settings
        self._client = client

    def _get_client(self) -> plaid_api.PlaidApi:
        """Get or create the Plaid API client."""
        if self._client is None:
            if not self._settings.client_id or not self._settings.secret:
                raise ConfigurationError(
                    "Missing Plaid configuration. Ensure PLAID_CLIENT_ID and PLAID_SECRET are set."
                )
            configuration = plaid.Configuration(
                host=PLAID_HOSTS[self._settings.environment],
                api_key={
                    "clientId": self._settings.client_id,
                    "secret": self._settings.secret,
                },
            )
            self._client = plaid_api.PlaidApi(plaid.ApiClient(configuration))
        return self._client

    def resolve_access_token(self) -> str:
        """
        Return PLAID_ACCESS_TOKEN, or the token stored by the linking flow.

        The token file is JSON: {"access_token": "..."}.
        """
        if self._settings.access_token:
            return self._settings.access_token

        path = self._settings.access_token_file
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            raise ConfigurationError(
                f"No Plaid access token: set PLAID_ACCESS_TOKEN or link an account ({path} not found)"
            )
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Unreadable Plaid access token file {path}: {e}")

        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise ConfigurationError(f"Plaid access token file {path} has no access_token")
        return token

    async def get_transactions(
        self,
        access_token: str,
        start_date: date,
        end_date: date,
    ) -> list[Transaction]:
        """
        Fetch all transactions in [start_date, end_date], following pagination.

        Raises:
            ConfigurationError: If Plaid credentials are missing
            UpstreamFetchError: If any page request fails
            CalculationError: If a record has an unparseable date or amount
        """
        client = self._get_client()
        records: list[Any] = []
        total: Optional[int] = None

        while total is None or len(records) < total:
            request = TransactionsGetRequest(
                access_token=access_token,
                start_date=start_date,
                end_date=end_date,
                options=TransactionsGetRequestOptions(
                    count=self._settings.page_size,
                    offset=len(records),
                ),
            )
            response = await self._call("transactions_get", client.transactions_get, request)

            page = list(response["transactions"])
            total = int(response["total_transactions"])
            records.extend(page)

            if not page:
                break

        logger.info(
            "transactions_fetched",
            count=len(records),
            total=total,
            start_date=start_date.isoformat(),
            end_date=end_date.isoformat(),
        )

        return [
            Transaction.from_record({"date": record["date"], "amount": record["amount"]})
            for record in records
        ]

    async def get_accounts(self, access_token: str) -> list[Account]:
        """List the accounts linked to the access token."""
        client = self._get_client()
        request = AccountsGetRequest(access_token=access_token)
        response = await self._call("accounts_get", client.accounts_get, request)

        accounts = []
        for item in response["accounts"]:
            balances = item.get("balances")
            current = balances.get("current") if balances is not None else None
            accounts.append(Account(
                account_id=str(item["account_id"]),
                name=str(item["name"]),
                mask=item.get("mask"),
                type=_enum_value(item.get("type")),
                subtype=_enum_value(item.get("subtype")),
                current_balance=Decimal(str(current)) if current is not None else None,
                iso_currency_code=balances.get("iso_currency_code") if balances is not None else None,
            ))
        return accounts

    async def _call(self, operation: str, func, request) -> Any:
        """Run a blocking SDK call in a thread and translate its errors."""
        try:
            return await asyncio.to_thread(func, request)
        except plaid.ApiException as e:
            code = _plaid_error_code(e)
            logger.error("plaid_request_failed", operation=operation, status=e.status, error_code=code)
            raise UpstreamFetchError(
                f"Plaid {operation} failed with status {e.status}: {code or e.reason}",
                error_code=code,
            ) from e
        except Exception as e:
            logger.error("plaid_request_failed", operation=operation, error=str(e))
            raise UpstreamFetchError(f"Plaid {operation} failed: {e}") from e
