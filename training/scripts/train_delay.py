"""Train the delay regressor offline and save it for the API to load.

Reads delivered projects from the CRM database, fits the LightGBM delay
model, logs cross-validation metrics and feature importances, and writes
``model.txt`` + ``metrics.json`` to the configured output directory. Point
``DELAY_MODEL_FILE`` at the saved ``model.txt`` to serve it.

Usage:
    python training/scripts/train_delay.py [--config training/configs/delay_regressor.yaml]
"""

import argparse
import json
import logging
import sys
from pathlib import Path

import yaml

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)


def load_config(path: str) -> dict:
    with open(path) as f:
        return yaml.safe_load(f)


def main(config_path: str = "training/configs/delay_regressor.yaml") -> None:
    config = load_config(config_path)
    logger.info("Training %s with config: %s", config["model"]["name"], config_path)

    sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent / "backend"))
    from config import Settings
    from services.pipeline.orchestrator import PredictionService
    from services.storage import create_repository

    cfg = Settings(
        database_url=config["data"]["database_url"],
        prediction_mode="trained",
        min_training_rows=config["data"]["min_training_rows"],
        num_trees=config["training"]["num_trees"],
        num_leaves=config["training"]["num_leaves"],
        min_data_in_leaf=config["training"]["min_data_in_leaf"],
        learning_rate=config["training"]["learning_rate"],
        random_seed=config["training"]["seed"],
        evaluation_fills_missing_labels=config["evaluation"]["fill_missing_labels"],
    )

    # --- 1. Train ---
    svc = PredictionService(create_repository(cfg.database_url), cfg)
    row_count = svc.train()
    held = svc.regressor.current()
    logger.info("Trained on %d labeled projects (model kind: %s)", row_count, held.kind)

    # --- 2. Evaluate ---
    metrics = svc.cross_validate(config["evaluation"]["folds"])
    if metrics.insufficient_data:
        logger.warning("Not enough rows for cross-validation (%d)", metrics.row_count)
    else:
        for fold in metrics.folds:
            logger.info("Fold %d: MAE=%.3f RMSE=%.3f R2=%.3f", fold.fold, fold.mae, fold.rmse, fold.r2)
        logger.info(
            "Mean: MAE=%.3f RMSE=%.3f R2=%.3f",
            metrics.mean_mae, metrics.mean_rmse, metrics.mean_r2,
        )

    importance = svc.feature_importance()
    logger.info("Feature importances (|corr| with delay):")
    for item in importance.items:
        logger.info("  %-22s %.4f", item.feature_name, item.abs_correlation)

    # --- 3. Save ---
    output_dir = Path(config["output"]["model_dir"])
    output_dir.mkdir(parents=True, exist_ok=True)

    if held.kind != "lightgbm":
        logger.warning("Only the label-echo fallback was fitted; no model file written.")
    else:
        svc.regressor.save(output_dir / "model.txt")

    with open(output_dir / "metrics.json", "w") as f:
        json.dump(
            {
                "row_count": row_count,
                "model_kind": held.kind,
                "cross_validation": metrics.model_dump(),
                "feature_importance": importance.model_dump(),
            },
            f,
            indent=2,
        )
    logger.info("Metrics written to %s", output_dir / "metrics.json")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Train the delay regressor")
    parser.add_argument("--config", default="training/configs/delay_regressor.yaml")
    args = parser.parse_args()
    main(args.config)
