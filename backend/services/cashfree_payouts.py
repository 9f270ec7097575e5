"""
Cashfree Payouts client - bank transfers for approved teacher payouts
"""
import logging
from datetime import datetime, timedelta
from typing import Dict, Any, Optional

import requests

from core.config import settings

logger = logging.getLogger(__name__)

PAYOUT_URLS = {
    "test": "https://payout-gamma.cashfree.com/payout/v1",
    "production": "https://payout-api.cashfree.com/payout/v1",
}


class PayoutServiceError(Exception):
    """Raised when the payouts API rejects a call or is unreachable"""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.message = message
        self.original_error = original_error
        super().__init__(message)


class CashfreePayoutService:
    """
    Thin client over the Cashfree Payouts v1 API.
    Bearer tokens from /authorize are cached until shortly before they expire.
    """

    def __init__(self, client_id: str = None, client_secret: str = None, environment: str = None):
        self.client_id = client_id if client_id is not None else settings.CASHFREE_PAYOUT_CLIENT_ID
        self.client_secret = client_secret if client_secret is not None else settings.CASHFREE_PAYOUT_CLIENT_SECRET
        self.environment = environment or settings.CASHFREE_PAYOUT_ENVIRONMENT
        self.base_url = PAYOUT_URLS.get(self.environment, PAYOUT_URLS["test"])
        self._token = None
        self._token_expires_at = None

    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def _call(self, method: str, path: str, headers: Dict[str, str], payload: Dict[str, Any] = None,
              params: Dict[str, Any] = None) -> Dict[str, Any]:
        try:
            response = requests.request(
                method,
                f"{self.base_url}{path}",
                json=payload,
                params=params,
                headers=headers,
                timeout=30,
            )
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Cashfree payouts {method} {path} failed: {str(e)}")
            raise PayoutServiceError(f"Payout API request failed: {str(e)}", e)

    def authorize(self) -> str:
        if self._token and self._token_expires_at and self._token_expires_at > datetime.utcnow():
            return self._token

        if not self.is_configured():
            raise PayoutServiceError("Cashfree payouts are not configured")

        data = self._call("POST", "/authorize", {
            "X-Client-Id": self.client_id,
            "X-Client-Secret": self.client_secret,
        })
        if data.get("status") != "SUCCESS":
            raise PayoutServiceError(f"Authorization failed: {data.get('message')}")

        self._token = data["data"]["token"]
        # Tokens live for 10 minutes; refresh a minute early
        self._token_expires_at = datetime.utcnow() + timedelta(minutes=9)
        return self._token

    def _authorized(self, method: str, path: str, payload: Dict[str, Any] = None,
                    params: Dict[str, Any] = None) -> Dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self.authorize()}",
            "Content-Type": "application/json",
        }
        return self._call(method, path, headers, payload, params)

    def add_beneficiary(self, bene_id: str, name: str, email: str, phone: str,
                        bank_account: str, ifsc: str, address: str = "India") -> Dict[str, Any]:
        data = self._authorized("POST", "/addBeneficiary", {
            "beneId": bene_id,
            "name": name,
            "email": email,
            "phone": phone or "9999999999",
            "bankAccount": bank_account,
            "ifsc": ifsc,
            "address1": address,
        })
        # An existing beneficiary is fine to transfer to
        if data.get("status") != "SUCCESS" and data.get("subCode") != "409":
            if "already exists" not in (data.get("message") or "").lower():
                raise PayoutServiceError(f"Failed to add beneficiary: {data.get('message')}")
        return data

    def request_transfer(self, bene_id: str, amount: float, transfer_id: str,
                         remarks: str = "Teacher payout") -> Dict[str, Any]:
        data = self._authorized("POST", "/requestTransfer", {
            "beneId": bene_id,
            "amount": f"{amount:.2f}",
            "transferId": transfer_id,
            "transferMode": "banktransfer",
            "remarks": remarks,
        })
        if data.get("status") not in ("SUCCESS", "PENDING"):
            raise PayoutServiceError(f"Transfer request failed: {data.get('message')}")

        logger.info(f"Cashfree transfer {transfer_id} accepted with status {data.get('status')}")
        return {
            "status": data.get("status"),
            "referenceId": (data.get("data") or {}).get("referenceId"),
            "utr": (data.get("data") or {}).get("utr"),
            "raw": data,
        }

    def get_transfer_status(self, transfer_id: str) -> Dict[str, Any]:
        data = self._authorized("GET", "/getTransferStatus", params={"transferId": transfer_id})
        transfer = (data.get("data") or {}).get("transfer", {})
        return {
            "status": transfer.get("status"),
            "referenceId": transfer.get("referenceId"),
            "utr": transfer.get("utr"),
            "reason": transfer.get("reason"),
            "raw": data,
        }


# Global service instance
payout_service = CashfreePayoutService()
