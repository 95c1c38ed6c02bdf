from pydantic import BaseModel, Field
from typing import Annotated, Optional, List, Literal, Union

UNIDADES = ["1ª Unidade", "2ª Unidade", "3ª Unidade", "4ª Unidade"]
DEFAULT_UNIDADE = "1ª Unidade"
DEFAULT_MATERIA = "Geral"

Unidade = Literal["1ª Unidade", "2ª Unidade", "3ª Unidade", "4ª Unidade"]

class ChoiceOption(BaseModel):
    id: str
    text: str

class MultipleChoiceItem(BaseModel):
    id: str
    type: Literal["multiple_choice"] = "multiple_choice"
    question: str
    points: float = Field(default=1, ge=0)
    options: List[ChoiceOption] = []
    correct_option_id: Optional[str] = None

class TextItem(BaseModel):
    id: str
    type: Literal["text"] = "text"
    question: str
    points: float = Field(default=1, ge=0)

ActivityItem = Annotated[Union[MultipleChoiceItem, TextItem], Field(discriminator="type")]

class GradingConfig(BaseModel):
    objective_questions: Literal["automatic", "manual"] = "automatic"

class Activity(BaseModel):
    id: str
    class_id: str
    title: str
    description: Optional[str] = None
    materia: str = DEFAULT_MATERIA
    unidade: Unidade = DEFAULT_UNIDADE
    points: float = 0
    items: List[ActivityItem] = []
    grading_config: GradingConfig = GradingConfig()
    status: str = "Pendente"
    submission_count: int = 0
    pending_submission_count: int = 0
    created_by: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def has_text_items(self) -> bool:
        return any(item.type == "text" for item in self.items)

    def find_item(self, item_id: str):
        for item in self.items:
            if item.id == item_id:
                return item
        return None

class ActivityCreate(BaseModel):
    class_id: str
    title: str
    description: Optional[str] = None
    materia: str = DEFAULT_MATERIA
    unidade: Unidade = DEFAULT_UNIDADE
    points: Optional[float] = None          # must equal the sum of item points when given
    items: List[ActivityItem]
    grading_config: GradingConfig = GradingConfig()
    is_draft: bool = False

class ActivityDraftRequest(BaseModel):
    topic: str
    materia: str = DEFAULT_MATERIA
    count: int = Field(default=3, ge=1, le=10)
    points_per_item: float = Field(default=1, ge=0)

class ActivityItemsResponse(BaseModel):
    items: List[ActivityItem]
