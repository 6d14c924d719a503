"""
ResearchQuest API - FastAPI backend for the research journey, gamification
and community directories.
Supports Server-Sent Events (SSE) for the progress ramp.
"""

from dotenv import find_dotenv, load_dotenv

# Load local .env before the route modules read their configuration.
load_dotenv(find_dotenv(usecwd=True), override=False)

from fastapi import FastAPI  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402

from researchquest import __version__  # noqa: E402
from researchquest.api.container import (  # noqa: E402
    get_platform_adapters,
    get_resource_adapters,
)
from researchquest.application.services.source_fanout import close_all  # noqa: E402
from researchquest.utils.logging_config import LogFiles, Logger  # noqa: E402

from .routes import (  # noqa: E402
    communities,
    gamification,
    journey,
    projects,
    resources,
    tasks,
    topics,
)

app = FastAPI(
    title="ResearchQuest API",
    description="API for guided research projects, points, achievements and community discovery",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "version": __version__}


app.include_router(projects.router, prefix="/api", tags=["Projects"])
app.include_router(tasks.router, prefix="/api", tags=["Tasks"])
app.include_router(journey.router, prefix="/api", tags=["Research Journey"])
app.include_router(topics.router, prefix="/api", tags=["Topics"])
app.include_router(gamification.router, prefix="/api", tags=["Gamification"])
app.include_router(communities.router, prefix="/api", tags=["Communities"])
app.include_router(resources.router, prefix="/api", tags=["Resources"])


@app.on_event("shutdown")
async def _close_adapters():
    await close_all(get_platform_adapters())
    await close_all(get_resource_adapters())
    Logger.info("API shutdown: external adapters closed", file=LogFiles.API)
    Logger.close()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
