from pydantic import BaseModel
from typing import Optional

class TranslationCacheEntry(BaseModel):
    id: int
    source_text: str
    translated_text: str
    source_lang: str = "zh"
    target_lang: str = "en"
    created_at: Optional[str] = None

    class Config:
        from_attributes = True
