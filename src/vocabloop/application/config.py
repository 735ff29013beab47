from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from vocabloop.domain.constants import (
    DEFAULT_TARGET_CARDS,
    DEFAULT_WEIGHT_DUE,
    DEFAULT_WEIGHT_NEW,
    DEFAULT_WEIGHT_WEAK_TAG,
    MIN_TAG_REVIEWS,
    STRONG_TAG_MIN_CARDS,
    STRONG_TAG_THRESHOLD,
    WEAK_TAG_MIN_CARDS,
    WEAK_TAG_THRESHOLD,
)
from vocabloop.domain.models import SessionConfig, SessionWeights

from .tag_analyzer import TagThresholds


def config_file_path() -> Path:
    return Path.home() / ".config/vocabloop/config.toml"


class AppConfig(BaseSettings):
    """
    Configuration model for vocabloop.
    Supports loading from:
    1. Environment variables (VOCABLOOP_*)
    2. Config file (~/.config/vocabloop/config.toml)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="VOCABLOOP_",
        extra="ignore",
    )

    # Paths
    deck_path: Path | None = None
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".config/vocabloop/logs")

    # Session defaults
    session_mode: Literal["smart", "due-only", "tag-focus"] = "smart"
    target_cards: int = Field(default=DEFAULT_TARGET_CARDS, ge=1)
    enable_confidence_recovery: bool = True
    weight_due: float = Field(default=DEFAULT_WEIGHT_DUE, ge=0)
    weight_weak_tag: float = Field(default=DEFAULT_WEIGHT_WEAK_TAG, ge=0)
    weight_new: float = Field(default=DEFAULT_WEIGHT_NEW, ge=0)

    # Tag classification policy
    weak_threshold: float = Field(default=WEAK_TAG_THRESHOLD, ge=0, le=100)
    weak_min_cards: int = Field(default=WEAK_TAG_MIN_CARDS, ge=1)
    strong_threshold: float = Field(default=STRONG_TAG_THRESHOLD, ge=0, le=100)
    strong_min_cards: int = Field(default=STRONG_TAG_MIN_CARDS, ge=1)
    min_tag_reviews: int = Field(default=MIN_TAG_REVIEWS, ge=0)

    # 0 = warnings only, 1 = info, 2+ = debug; `-v` on the command line overrides
    verbose: int = Field(default=0, ge=0)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        # Highest priority first: CLI overrides, then env, then the TOML file
        config_file = config_file_path()
        if config_file.exists():
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=config_file),
            )
        return (
            init_settings,
            env_settings,
        )

    @field_validator("deck_path", mode="before")
    @classmethod
    def resolve_deck_path(cls, v: Any) -> Path | None:
        if v is None or v == "":
            return None
        return Path(v).expanduser().resolve()

    def tag_thresholds(self) -> TagThresholds:
        return TagThresholds(
            weak_threshold=self.weak_threshold,
            weak_min_cards=self.weak_min_cards,
            strong_threshold=self.strong_threshold,
            strong_min_cards=self.strong_min_cards,
            min_reviews=self.min_tag_reviews,
        )

    def session_weights(self) -> SessionWeights:
        return SessionWeights(
            due=self.weight_due,
            weak_tag=self.weight_weak_tag,
            new=self.weight_new,
        )

    def session_config(
        self,
        mode: str | None = None,
        target_cards: int | None = None,
        tag_focus: str | None = None,
        enable_confidence_recovery: bool | None = None,
    ) -> SessionConfig:
        """Build a SessionConfig from these defaults plus per-session choices."""
        return SessionConfig(
            mode=mode or self.session_mode,
            target_cards=target_cards if target_cards is not None else self.target_cards,
            tag_focus=tag_focus,
            weights=self.session_weights(),
            enable_confidence_recovery=(
                self.enable_confidence_recovery
                if enable_confidence_recovery is None
                else enable_confidence_recovery
            ),
        )


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/vocabloop/config.toml (if exists)
    3. Environment variables (VOCABLOOP_*)
    4. cli_overrides (passed from Typer)
    """
    # Typer passes None for options the user did not set
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
