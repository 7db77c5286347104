"""Device code grant.

The engine requests a device code, the user prompt callback shows the
user where to enter it, and the engine polls the token endpoint until the
user completes sign-in, the code expires, or the request is aborted.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Union

from pydantic import BaseModel, Field

from azidentity.engine.base import EngineApps, EngineResult, TokenFlow, resolve_maybe_awaitable
from azidentity.exceptions import TokenEngineError
from azidentity.models import GetTokenOptions

if TYPE_CHECKING:
    from azidentity.engine.client import EngineClient


class DeviceCodeInfo(BaseModel):
    """What the user needs to complete a device code sign-in."""

    user_code: str = Field(description="Code the user enters on the verification page")
    verification_uri: str = Field(description="Page where the code is entered")
    message: str = Field(description="Ready-made instructions for the user")


DeviceCodePromptCallback = Callable[[DeviceCodeInfo], Union[None, Awaitable[None]]]


def default_device_code_prompt(info: DeviceCodeInfo) -> None:
    print(info.message)


class DeviceCodeFlow(TokenFlow):
    """Acquire user tokens with the device code grant.

    Args:
        user_prompt_callback: Receives the :class:`DeviceCodeInfo`; sync or
            async. Defaults to printing the message.
    """

    def __init__(self, user_prompt_callback: Optional[DeviceCodePromptCallback] = None) -> None:
        self._user_prompt_callback = user_prompt_callback or default_device_code_prompt

    async def acquire(
        self,
        engine: EngineClient,
        apps: EngineApps,
        scopes: list[str],
        options: GetTokenOptions,
    ) -> EngineResult:
        app = apps.pick("public")
        flow: dict[str, Any] = await engine.run(options, app.initiate_device_flow, scopes=scopes)
        if "user_code" not in flow:
            raise TokenEngineError(
                str(flow.get("error", "device_code_error")),
                str(flow.get("error_description") or "Failed to start the device code flow."),
            )

        await resolve_maybe_awaitable(
            self._user_prompt_callback(
                DeviceCodeInfo(
                    user_code=flow["user_code"],
                    verification_uri=flow.get("verification_uri", ""),
                    message=flow.get("message", ""),
                )
            )
        )

        def _stop_polling(_flow: dict[str, Any]) -> bool:
            return options.is_aborted

        return await engine.run(
            options,
            app.acquire_token_by_device_flow,
            flow,
            claims_challenge=options.claims,
            exit_condition=_stop_polling,
        )
