"""Main entry point for running the FastAPI application with auto-reload."""
import uvicorn

from pitchhub.config import get_settings

if __name__ == "__main__":
    settings = get_settings()
    print(f"Starting {settings.app_name} v{settings.version}")
    print(f"Debug mode: {settings.debug}")
    print(f"Database: {settings.db.url.split('@')[-1] if '@' in settings.db.url else 'SQLite'}")
    print(f"Transcription provider: {settings.transcription.base_url}")
    print(f"Content analysis: {'enabled' if settings.content.api_key else 'lexical fallback only'}")
    print(f"Embeddings: {'enabled' if settings.embeddings.api_key and settings.embeddings.enabled else 'fallback vectors only'}")
    print("-" * 50)

    uvicorn.run(
        "pitchhub.api:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        reload_dirs=["pitchhub", "insights", "config"] if settings.debug else None,
        reload_includes=["*.py"] if settings.debug else None,
        log_level=settings.logging.level.lower(),
    )
