"""Main API router aggregating all module routers."""

from fastapi import APIRouter

from app.api.v1.endpoints import (
    auth,
    courses,
    dashboard,
    grades,
    imports,
    students,
    subjects,
)

api_router = APIRouter()

# Authentication (no owner context required)
api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["Authentication"],
)

# Courses (owner-scoped)
api_router.include_router(
    courses.router,
    prefix="/courses",
    tags=["Courses"],
)

# Subjects (owner-scoped)
api_router.include_router(
    subjects.router,
    prefix="/subjects",
    tags=["Subjects"],
)

# Students (scoped through the owner's courses)
api_router.include_router(
    students.router,
    prefix="/students",
    tags=["Students"],
)

# Grades (scoped through the owner's subjects)
api_router.include_router(
    grades.router,
    prefix="/grades",
    tags=["Grades"],
)

# Spreadsheet imports and their history
api_router.include_router(
    imports.router,
    prefix="/imports",
    tags=["Imports"],
)

# Dashboard analytics
api_router.include_router(
    dashboard.router,
    prefix="/dashboard",
    tags=["Dashboard"],
)
