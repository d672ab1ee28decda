"""HTTP surface: FastAPI application factory and routers."""
