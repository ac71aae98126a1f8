"""Webhook inbox feeds receive pushed events; they have a config but no poller."""

from pydantic import BaseModel, ConfigDict, Field, model_validator


class WebhookInboxConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    token: str | None = Field(default=None, min_length=1, max_length=200)
    # Older feeds were registered with "secret" as the path token
    secret: str | None = Field(default=None, min_length=1, max_length=200)

    @model_validator(mode="after")
    def _require_token(self) -> "WebhookInboxConfig":
        if not self.token and not self.secret:
            raise ValueError("webhook_inbox requires a token or secret")
        return self

    @property
    def path_tokens(self) -> list[str]:
        return [value for value in (self.token, self.secret) if value]
