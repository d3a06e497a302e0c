"""
Related Ticket Finder - Configuration Management
"""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import List

from ticket_dedup.models.schemas import SimilarityWeights


class Settings(BaseSettings):
    """Application settings"""

    # FastAPI
    fastapi_env: str = "development"
    fastapi_host: str = "0.0.0.0"
    fastapi_port: int = 8000

    # Jira (external ticket source)
    jira_base_url: str = ""
    jira_username: str = ""
    jira_api_token: str = ""
    jira_target_projects: str = ""  # Comma-separated project keys
    jira_max_historical_tickets: int = 1000
    jira_enable_webhook_validation: bool = True
    jira_webhook_secret: str = ""

    # Similarity
    similarity_title_weight: float = Field(0.4, ge=0.0)
    similarity_description_weight: float = Field(0.3, ge=0.0)
    similarity_file_path_weight: float = Field(0.25, ge=0.0)
    similarity_label_weight: float = Field(0.05, ge=0.0)
    # Same bounds as AnalysisRequest, which the webhook pipeline builds from these
    minimum_similarity_threshold: float = Field(0.3, ge=0.0, le=1.0)
    max_similar_tickets: int = Field(10, ge=1, le=100)

    # Historical sync
    enable_historical_data_sync: bool = True
    historical_data_sync_interval_hours: float = Field(24.0, gt=0.0)

    # Supabase (local ticket store)
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: str = ""
    tickets_table: str = "tickets"

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False
    )

    @property
    def target_projects(self) -> List[str]:
        """Tracked project keys parsed from JIRA_TARGET_PROJECTS"""
        return [p.strip() for p in self.jira_target_projects.split(",") if p.strip()]

    @property
    def similarity_weights(self) -> SimilarityWeights:
        """Weights used by the similarity scorer"""
        return SimilarityWeights(
            title=self.similarity_title_weight,
            description=self.similarity_description_weight,
            file_path=self.similarity_file_path_weight,
            label=self.similarity_label_weight,
        )

    @property
    def sync_interval_seconds(self) -> float:
        return self.historical_data_sync_interval_hours * 3600


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
