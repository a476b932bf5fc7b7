import httpx
import logging

from checkout_service.application.interfaces import PaymentGateway
from checkout_service.domain.models import PaymentVerification
from checkout_service.domain.exceptions import PaymentServiceError

logger = logging.getLogger(__name__)


class HTTPPaymentsClient(PaymentGateway):
    """Внешний платежный сервис: подпись и протокол шлюза остаются на его стороне"""

    def __init__(self, base_url: str, api_token: str, return_url: str, timeout: float = 30.0,
                 transport: httpx.AsyncBaseTransport | None = None):
        self._base_url = base_url
        self._api_token = api_token
        self._return_url = return_url
        self._timeout = timeout
        self._transport = transport

    async def build_payment_url(self, order_id: str, amount: int, client_ip: str) -> str:
        data = await self._post(
            "/api/payments/url",
            {
                "order_id": order_id,
                "amount": amount,
                "client_ip": client_ip,
                "return_url": self._return_url
            }
        )
        payment_url = data.get("payment_url")
        if not payment_url:
            raise PaymentServiceError("Payment service не вернул payment_url")
        return payment_url

    async def verify_callback(self, raw_params: dict) -> PaymentVerification:
        data = await self._post("/api/payments/verify", {"params": raw_params})
        return PaymentVerification(**data)

    async def _post(self, path: str, payload: dict) -> dict:
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(
                    f"{self._base_url}{path}",
                    json=payload,
                    headers={
                        "X-API-Key": self._api_token,
                        "Content-Type": "application/json"
                    },
                    timeout=self._timeout
                )

                if response.status_code in (200, 201):
                    return response.json()
                else:
                    raise PaymentServiceError(f"Payment service ошибка: {response.status_code}")

        except httpx.RequestError as e:
            logger.error(f"Payment service ошибка подключения: {e}")
            raise PaymentServiceError(f"Payment service не доступен: {str(e)}")
