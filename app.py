import logging
import os
import threading
import uuid
from collections import OrderedDict

from fastapi import FastAPI, File, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, JSONResponse

from controller import FAILURE_POLICY, AnalysisController, AnalysisState
from frontend import UI_HTML
from inference_client import InferenceClient, InferenceError, SpaceConnection

SESSION_COOKIE = "ovaquick_session"
MAX_SESSIONS = int(os.getenv("OVAQUICK_MAX_SESSIONS", "1000"))

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(title="OvaQuick")


@app.on_event("startup")
def startup_connect():
    app.state.connection = SpaceConnection()
    app.state.inference = InferenceClient(app.state.connection)
    app.state.sessions = OrderedDict()
    app.state.sessions_lock = threading.Lock()
    app.state.max_sessions = MAX_SESSIONS
    logger.info("Using Space %s", app.state.connection.space_id)


@app.on_event("shutdown")
def shutdown_disconnect():
    app.state.connection.close()


def _session(request: Request):
    state = request.app.state
    sessions = state.sessions
    session_id = request.cookies.get(SESSION_COOKIE)
    with state.sessions_lock:
        if session_id in sessions:
            sessions.move_to_end(session_id)
            return session_id, sessions[session_id]

        session_id = uuid.uuid4().hex
        sessions[session_id] = AnalysisController(FAILURE_POLICY)
        logger.debug("Opened session %s", session_id)
        # least recently used sessions go first
        while len(sessions) > max(state.max_sessions, 1):
            evicted, _ = sessions.popitem(last=False)
            logger.debug("Evicted session %s", evicted)
        return session_id, sessions[session_id]


def _view(session_id: str, controller: AnalysisController, status_code: int = 200):
    response = JSONResponse(status_code=status_code, content=controller.render())
    response.set_cookie(SESSION_COOKIE, session_id, httponly=True, samesite="lax")
    return response


@app.get("/health")
def health():
    return {"status": "ok", "space": app.state.connection.space_id}


@app.get("/", response_class=HTMLResponse)
def interface():
    return HTMLResponse(content=UI_HTML)


@app.post("/predict")
async def predict(file: UploadFile = File(...)):
    data = await file.read()
    if not data:
        return JSONResponse(status_code=400, content={"error": "Empty upload."})

    try:
        result = await run_in_threadpool(
            app.state.inference.predict, data, file.filename
        )
    except InferenceError as e:
        logger.error("Stateless prediction failed: %s", e)
        return JSONResponse(status_code=502, content={"error": str(e)})

    return result.to_dict()


@app.get("/analysis")
def analysis_view(request: Request):
    session_id, controller = _session(request)
    return _view(session_id, controller)


@app.post("/analysis/file")
async def analysis_select_file(request: Request, file: UploadFile | None = File(None)):
    session_id, controller = _session(request)
    if file is None:
        controller.select_file(b"")
    else:
        data = await file.read()
        controller.select_file(
            data, filename=file.filename, content_type=file.content_type
        )
    return _view(session_id, controller)


@app.post("/analysis/submit")
async def analysis_submit(request: Request):
    session_id, controller = _session(request)
    try:
        state = await run_in_threadpool(controller.submit, request.app.state.inference)
    except Exception:
        logger.exception("Unexpected error while predicting")
        state = controller.state
    status_code = 502 if state == AnalysisState.FAILURE else 200
    return _view(session_id, controller, status_code=status_code)


@app.post("/analysis/reset")
def analysis_reset(request: Request):
    session_id, controller = _session(request)
    controller.reset()
    return _view(session_id, controller)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app:app",
        host=os.getenv("OVAQUICK_HOST", "0.0.0.0"),
        port=int(os.getenv("OVAQUICK_PORT", "8000")),
        reload=False,
    )
