# Routes package __init__.py - re-exports routers for main.py convenience
from .semesters import router as semesters_router
from .courses import router as courses_router
from .problems import router as problems_router

__all__ = ['semesters_router', 'courses_router', 'problems_router']
