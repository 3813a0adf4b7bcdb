from app.utils.settings import Settings


class HealthService:
    """
    Service layer for health-related logic.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def get_health_status(self) -> dict:
        """
        Reports liveness plus the decoder and assistant configuration, without exposing secrets.
        """
        return {
            "status": "ok",
            "decoder_provider": self.settings.decoder_provider,
            "enrichment_enabled": self.settings.enrichment_enabled,
            "summaries_enabled": self.settings.summaries_enabled,
            "ai_provider": self.settings.ai_provider,
            "ai_model": self.settings.ai_model,
            "has_ai_key": bool(self.settings.ai_api_key),
        }


def get_health_service() -> HealthService:
    return HealthService(Settings.from_env())
