from pydantic import BaseModel, Field, ValidationError

class SettingsSchema(BaseModel):
    weight_unit: str = "lbs"
    weight_increment: float = Field(5.0, gt=0)
    rep_increment: int = Field(1, gt=0)
    default_target_sets: int = Field(2, gt=0)
    timer_interval: float = Field(1.0, gt=0)

def validate_settings(data: dict) -> None:
    try:
        SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
