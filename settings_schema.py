from pydantic import BaseModel, ValidationError

class SettingsSchema(BaseModel):
    db_path: str = "workout.db"
    storage_key: str = "gymProgress"
    most_common_limit: int = 5
    log_level: str = "INFO"
    api_url: str = "http://localhost:8000"
    weight_unit: str = "kg"

def validate_settings(data: dict) -> SettingsSchema:
    try:
        return SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
