from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from prompt_client.api.router import router
from prompt_client.configuration import ConfigProvider, get_config_provider, setup_config_store

app = FastAPI(title="Prompt Template Invocation Service")
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

app.include_router(router)


@app.on_event("startup")
async def startup():
    try:
        logger.info("Starting up application...")
        setup_config_store()

        provider: ConfigProvider = get_config_provider()
        if not provider.is_configured():
            raise RuntimeError("Configuration setup failed")

        logger.info("Application startup completed successfully")

    except Exception as e:
        logger.error(f"Failed to start application: {e}")
        raise
