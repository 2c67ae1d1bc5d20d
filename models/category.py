from pydantic import BaseModel

class CategoryBase(BaseModel):
    course_id: int
    name: str

class CategoryCreate(CategoryBase):
    pass

class Category(CategoryBase):
    id: int

    class Config:
        from_attributes = True
