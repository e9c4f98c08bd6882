from pydantic import BaseModel, Field


class PredictDelayRequest(BaseModel):
    length_m: float = Field(0.0, ge=0, description="Yacht model length in metres")
    base_price: float = Field(0.0, ge=0, description="Yacht model base price")
    task_count: int = Field(0, ge=0)
    change_request_count: int = Field(0, ge=0)
    interaction_count: int = Field(0, ge=0)
