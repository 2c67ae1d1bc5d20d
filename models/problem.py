from pydantic import BaseModel, Field
from typing import Annotated, Literal, Optional, Set, Tuple, Union

class FromLogItem(BaseModel):
    kind: Literal["log_item"] = "log_item"
    log_item_id: int

class FromExam(BaseModel):
    kind: Literal["exam"] = "exam"
    exam_id: int

class Unattached(BaseModel):
    kind: Literal["unattached"] = "unattached"

# A problem comes from at most one place
ProblemSource = Annotated[Union[FromLogItem, FromExam, Unattached], Field(discriminator="kind")]

def source_from_columns(log_item_id: Optional[int], exam_id: Optional[int]):
    """Build the source union from the two nullable problem columns."""
    if log_item_id is not None and exam_id is not None:
        raise ValueError(
            f"Problem references both log item {log_item_id} and exam {exam_id}"
        )
    if log_item_id is not None:
        return FromLogItem(log_item_id=log_item_id)
    if exam_id is not None:
        return FromExam(exam_id=exam_id)
    return Unattached()

def source_to_columns(source) -> Tuple[Optional[int], Optional[int]]:
    """Split a source into (log_item_id, exam_id) column values."""
    if isinstance(source, FromLogItem):
        return source.log_item_id, None
    if isinstance(source, FromExam):
        return None, source.exam_id
    return None, None

class ProblemBase(BaseModel):
    description: str
    notes: Optional[str] = None
    image_url: Optional[str] = None
    solution_link: Optional[str] = None
    is_incorrect: bool = False

class ProblemCreate(ProblemBase):
    source: ProblemSource = Field(default_factory=Unattached)
    category_names: list[str] = []

class Problem(ProblemBase):
    id: int
    source: ProblemSource
    category_ids: Set[int] = set()

    class Config:
        from_attributes = True
