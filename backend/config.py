import os
from pydantic_settings import BaseSettings


def _parse_cors_origins() -> list[str] | None:
    """Parse CORS_ORIGINS env var as comma-separated string or JSON list."""
    raw = os.environ.get("CORS_ORIGINS")
    if not raw:
        return None
    if raw.startswith("["):
        import json
        return json.loads(raw)
    return [o.strip() for o in raw.split(",") if o.strip()]


class Settings(BaseSettings):
    database_url: str = "sqlite:///yachtcrm.db"
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]
    debug: bool = False
    log_level: str = "INFO"

    # Delay prediction
    prediction_mode: str = "trained"  # "trained" | "heuristic"
    delay_model_file: str = ""  # optional pre-trained LightGBM model.txt
    min_training_rows: int = 10
    random_seed: int = 42

    # LightGBM serving regressor
    num_trees: int = 200
    num_leaves: int = 32
    min_data_in_leaf: int = 10
    learning_rate: float = 0.15

    # Evaluation
    default_cv_folds: int = 5
    evaluation_fills_missing_labels: bool = False  # True: unlabeled rows count as 0-day delay

    # Risk dashboard
    high_risk_delay_days: float = 15.0
    high_risk_change_requests: int = 5
    default_feedback_score: float = 10.0  # placeholder outside the 0-10 range, means "no feedback"
    default_cluster_count: int = 3

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "protected_namespaces": ("settings_",)}


_cors_override = _parse_cors_origins()
settings = Settings(**{"cors_origins": _cors_override} if _cors_override else {})
