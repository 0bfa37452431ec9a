import os

from .ports import ChatGateway


def create_chat_gateway(transport: str | None = None) -> ChatGateway:
    """
    Factory: create the right gateway based on config.

    The transport can be passed explicitly or read from the
    CHAT_TRANSPORT env var. Defaults to "simulator".
    """
    transport = transport or os.environ.get("CHAT_TRANSPORT", "simulator")

    if transport == "waha":
        from .waha import WahaGateway

        return WahaGateway(
            base_url=os.environ.get("WAHA_URL", "http://localhost:3000"),
            webhook_url=os.environ["WEBHOOK_URL"],
            api_key=os.environ.get("WAHA_API_KEY"),
        )

    if transport == "simulator":
        from .simulator import SimulatorChatGateway

        return SimulatorChatGateway()

    raise ValueError(f"Unknown chat transport: {transport!r}")
