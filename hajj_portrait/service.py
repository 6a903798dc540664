"""
Hajj Portrait service - the single-page UI and its JSON API.

Routes:
- GET  /                    the page
- GET  /api/session         current session state
- POST /api/upload          multipart ``file`` -> original image
- POST /api/prompt          {"prompt": ...}
- POST /api/transform       run one transform for the session
- POST /api/reset           back to the empty state
- GET  /api/result          download the edited image as hajj-portrait.png
- POST /v1/photo/transform  stateless transform for the bot (X-API-KEY)
- GET  /health
"""

import logging
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, File, Header, HTTPException, Request, Response, UploadFile
from fastapi.responses import HTMLResponse
from pydantic import BaseModel
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from hajj_portrait.config import ServiceConfig, load_config
from hajj_portrait.photo_processing import (
    ImageGenerationClient,
    ImageGenerationError,
    MissingCredentialError,
    NoImageReturnedError,
    PortraitSession,
    SessionStore,
    process_photo,
)
from hajj_portrait.photo_processing.image_client import decode_image
from hajj_portrait.photo_processing.prompts import RESULT_FILENAME

logger = logging.getLogger(__name__)

SESSION_COOKIE = "portrait_session"
INDEX_HTML = Path(__file__).parent / "static" / "index.html"


class CustomAccessLogMiddleware(BaseHTTPMiddleware):
    """
    Request logging, skipping /health.
    """
    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.access_logger = logging.getLogger("hajj_portrait.access")

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()

        response = await call_next(request)

        process_time = time.time() - start_time

        if request.url.path != "/health":
            client = f"{request.client.host}:{request.client.port}" if request.client else "-"
            self.access_logger.info(
                f'{client} - "{request.method} {request.url.path}" '
                f'{response.status_code} {process_time:.4f}s'
            )

        return response


class SessionCookieMiddleware(BaseHTTPMiddleware):
    """
    Gives every browser a session id cookie, whatever response the route produces.
    """
    async def dispatch(self, request: Request, call_next):
        session_id = request.cookies.get(SESSION_COOKIE)
        is_new = not session_id
        if is_new:
            session_id = uuid.uuid4().hex
        request.state.session_id = session_id

        response = await call_next(request)

        if is_new:
            response.set_cookie(SESSION_COOKIE, session_id, httponly=True, samesite="lax")
        return response


# ============================================================================
# Pydantic Models
# ============================================================================

class PromptRequest(BaseModel):
    prompt: Optional[str] = None


class PhotoTransformRequest(BaseModel):
    image: str
    prompt: Optional[str] = None


# ============================================================================
# App factory
# ============================================================================

def create_app(
    config: Optional[ServiceConfig] = None,
    client: Optional[ImageGenerationClient] = None,
) -> FastAPI:
    config = config or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        image_client = client or ImageGenerationClient(
            api_key=config.gemini_api_key,
            model=config.image_gen_model,
            base_url=config.image_gen_base_url,
            timeout=config.image_gen_timeout,
        )
        if not config.gemini_api_key:
            logger.warning("GEMINI_API_KEY is not set, every transform will fail")
        app.state.image_client = image_client
        app.state.sessions = SessionStore(image_client.transform)
        try:
            yield
        finally:
            await image_client.close()

    app = FastAPI(
        title="Hajj Portrait Transformer",
        version="1.0.0",
        lifespan=lifespan,
        middleware=[
            Middleware(CustomAccessLogMiddleware),
            Middleware(SessionCookieMiddleware),
        ],
    )
    app.state.config = config

    async def get_session(request: Request) -> PortraitSession:
        return request.app.state.sessions.get(request.state.session_id)

    # ------------------------------------------------------------------------
    # Page & health
    # ------------------------------------------------------------------------

    @app.get("/", response_class=HTMLResponse)
    def index() -> str:
        return INDEX_HTML.read_text(encoding="utf-8")

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    # ------------------------------------------------------------------------
    # Session endpoints
    # ------------------------------------------------------------------------

    @app.get("/api/session")
    async def session_state(session: PortraitSession = Depends(get_session)) -> Dict[str, Any]:
        return session.snapshot()

    @app.post("/api/upload")
    async def upload(
        file: UploadFile = File(...),
        session: PortraitSession = Depends(get_session),
    ) -> Dict[str, Any]:
        data = await file.read()
        if not data:
            raise HTTPException(status_code=400, detail="Uploaded file is empty")
        session.upload(data, file.content_type if (file.content_type or "").startswith("image/") else None)
        return session.snapshot()

    @app.post("/api/prompt")
    async def set_prompt(
        req: PromptRequest,
        session: PortraitSession = Depends(get_session),
    ) -> Dict[str, Any]:
        session.set_prompt(req.prompt)
        return session.snapshot()

    @app.post("/api/transform")
    async def transform(session: PortraitSession = Depends(get_session)) -> Dict[str, Any]:
        await session.transform()
        return session.snapshot()

    @app.post("/api/reset")
    async def reset(session: PortraitSession = Depends(get_session)) -> Dict[str, Any]:
        session.reset()
        return session.snapshot()

    @app.get("/api/result")
    async def download_result(session: PortraitSession = Depends(get_session)) -> Response:
        if not session.state.edited_image:
            raise HTTPException(status_code=404, detail="No transformed image yet")
        mime, content = decode_image(session.state.edited_image)
        return Response(
            content=content,
            media_type=mime,
            headers={"Content-Disposition": f'attachment; filename="{RESULT_FILENAME}"'},
        )

    # ------------------------------------------------------------------------
    # Stateless endpoint for the bot
    # ------------------------------------------------------------------------

    @app.post("/v1/photo/transform")
    async def photo_transform(
        req: PhotoTransformRequest,
        request: Request,
        x_api_key: Optional[str] = Header(None),
    ) -> Dict[str, Any]:
        """
        Transform one photo by prompt.
        """
        expected_key = request.app.state.config.api_secret_key
        if not x_api_key or x_api_key != expected_key:
            raise HTTPException(status_code=403, detail="Invalid or missing API key")

        try:
            result = await process_photo(request.app.state.image_client, req.image, req.prompt)
        except MissingCredentialError as e:
            return {"status": "error", "error_type": "missing_credential", "message": str(e)}
        except NoImageReturnedError as e:
            return {"status": "error", "error_type": "no_image", "message": str(e)}
        except ImageGenerationError as e:
            return {"status": "error", "error_type": "api_error", "message": str(e)}
        except Exception as e:
            logger.error(f"❌ Unexpected error in photo transform endpoint: {e}", exc_info=True)
            raise HTTPException(
                status_code=500,
                detail=f"Internal server error: {str(e)}"
            )

        return {
            "status": "success",
            "result": result
        }

    return app


app = create_app()


def main():
    import uvicorn

    config = app.state.config
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    logger.info("Starting Hajj Portrait service")
    uvicorn.run(app, host="0.0.0.0", port=config.port)


if __name__ == "__main__":
    main()
