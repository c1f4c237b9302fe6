from leadflow.api.routers.pipeline import router as pipeline_router

__all__ = ["pipeline_router"]
