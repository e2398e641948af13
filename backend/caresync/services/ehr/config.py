"""EHR API config. Credentials from settings (EHR_BASE_URL, EHR_CLIENT_ID, EHR_ACCESS_TOKEN) or EhrClient args."""
from caresync.config import settings


class EhrConfig:
    """API credentials and base URL for the EHR."""

    __slots__ = ("base_url", "client_id", "access_token", "timeout_seconds")

    def __init__(
        self,
        *,
        base_url: str | None = None,
        client_id: str | None = None,
        access_token: str | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self.base_url = (base_url or settings.ehr_base_url).strip().rstrip("/")
        self.client_id = (client_id or settings.ehr_client_id).strip()
        self.access_token = (access_token or settings.ehr_access_token).strip()
        self.timeout_seconds = timeout_seconds or settings.ehr_timeout_seconds

    def is_configured(self) -> bool:
        return bool(self.base_url and self.access_token)

    def headers(self) -> dict[str, str]:
        h = {
            "Authorization": f"Bearer {self.access_token}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self.client_id:
            h["Epic-Client-ID"] = self.client_id
        return h
