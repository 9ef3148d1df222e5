"""Отправка писем по шаблонам через Resend."""
from typing import Any, Dict, List, Optional

import httpx
import structlog
from jinja2 import Environment, FileSystemLoader, select_autoescape

logger = structlog.get_logger(__name__)

TEMPLATE_LOCALE = "en-us"


class MailService:
    """
    Рендерит HTML-шаблон письма (Jinja2) и отправляет его через
    REST API Resend.
    """

    def __init__(
        self,
        api_key: str,
        sender: str,
        templates_dir: str,
        base_url: str = "https://api.resend.com",
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.sender = sender
        self._env = Environment(
            loader=FileSystemLoader(templates_dir),
            autoescape=select_autoescape(["html"]),
            enable_async=True,
        )
        self._client = client or httpx.AsyncClient(base_url=base_url)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def render(self, template: str, data: Dict[str, Any]) -> str:
        tpl = self._env.get_template(f"{template}_{TEMPLATE_LOCALE}.html")
        return await tpl.render_async(**data)

    async def send_template(
        self,
        template: str,
        data: Dict[str, Any],
        recipient: str,
        subject: str,
        tags: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """
        Отправляет письмо по шаблону.

        :return: Ответ Resend (идентификатор письма)
        :raises httpx.HTTPError: При ошибке доставки
        """
        html = await self.render(template, data)
        payload: Dict[str, Any] = {
            "from": self.sender,
            "to": [recipient],
            "subject": subject,
            "html": html,
        }
        if tags:
            payload["tags"] = [{"name": "category", "value": t} for t in tags]

        response = await self._client.post(
            "/emails",
            json=payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        response.raise_for_status()
        return response.json()

    async def notify(
        self,
        template: str,
        data: Dict[str, Any],
        recipient: str,
        subject: str,
        tags: Optional[List[str]] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        То же, что send_template, но ошибки только логируются:
        письмо не должно ломать основную операцию.
        """
        try:
            receipt = await self.send_template(
                template, data, recipient, subject, tags
            )
        except Exception as e:
            logger.error(
                "mail_send_failed",
                template=template,
                recipient=recipient,
                error=str(e),
            )
            return None

        logger.info("mail_sent", template=template, response=receipt)
        return receipt

    async def send_wallet_created(self, email: str, wallet) -> None:
        await self.notify(
            "wallet_created",
            {
                "email": email,
                "wallet_address": wallet.wallet_address,
                "evm_address": wallet.evm_address,
                "asset": wallet.asset,
            },
            recipient=email,
            subject="Your wallet is ready",
            tags=["wallet_created"],
        )
