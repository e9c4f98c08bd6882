from pydantic import BaseModel


class PredictionResponse(BaseModel):
    predicted_delay_days: float


class ProjectPrediction(BaseModel):
    project_id: int
    predicted_delay_days: float


class TrainResponse(BaseModel):
    model_config = {"protected_namespaces": ()}

    row_count: int
    model_kind: str


class CvFold(BaseModel):
    fold: int  # 1-based
    mae: float
    rmse: float
    r2: float


class CrossValidationMetrics(BaseModel):
    folds: list[CvFold] = []
    mean_mae: float = 0.0
    mean_rmse: float = 0.0
    mean_r2: float = 0.0
    row_count: int = 0
    model: str = "LightGBM (serving), Ridge (CV)"

    @property
    def insufficient_data(self) -> bool:
        return not self.folds


class FeatureImportanceItem(BaseModel):
    feature_name: str
    abs_correlation: float


class FeatureImportance(BaseModel):
    items: list[FeatureImportanceItem] = []
    row_count: int = 0
    method: str = "Absolute Pearson correlation with label"


class RiskRecord(BaseModel):
    project_id: int
    project_name: str = ""
    customer_name: str = ""
    predicted_delay: float
    change_request_count: int
    feedback_score: float


class DelayRankingRecord(BaseModel):
    project_id: int
    project_name: str = ""
    customer_name: str = ""
    predicted_delay: float
    change_request_count: int
    task_count: int
    length_m: float


class ClusterAssignment(BaseModel):
    project_id: int
    project_name: str = ""
    cluster_label: int  # 0-based, only meaningful within one clustering run
    predicted_delay: float
    change_request_count: int
    feedback_score: float


class HealthResponse(BaseModel):
    model_config = {"protected_namespaces": ()}

    status: str = "ok"
    prediction_mode: str = "trained"
    model_trained: bool = False
    model_kind: str = ""
    training_rows: int = 0
