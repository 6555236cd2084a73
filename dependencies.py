# dependencies.py

from fastapi import Request

from services import GenerationService


def get_generation_service(request: Request) -> GenerationService:
    """The service instance built by `main.create_app`."""
    return request.app.state.generation_service
