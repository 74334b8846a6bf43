from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class ApiSettings(BaseSettings):
    APP_NAME: str = "mailbatch"
    APP_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"
    EMAIL_DOMAINS: str = "moemail.app"
    MAX_ACTIVE_EMAILS: int = 30
    ROLE_EMAIL_LIMITS: dict[str, int] = {}
    PRIVILEGED_ROLE: str = "emperor"

    model_config = ConfigDict(env_file=".env", extra="ignore")

    @property
    def domains(self) -> list[str]:
        return [domain.strip() for domain in self.EMAIL_DOMAINS.split(",") if domain.strip()]

    def max_emails_for(self, role: str | None) -> int:
        if role is not None and role in self.ROLE_EMAIL_LIMITS:
            return self.ROLE_EMAIL_LIMITS[role]
        return self.MAX_ACTIVE_EMAILS


def get_api_settings() -> ApiSettings:
    return ApiSettings() # type: ignore[call-arg]
