from fastapi import FastAPI, HTTPException, Request
import logging
from contextlib import asynccontextmanager

from serialcan import __version__
from serialcan.adapters.lawicel import LawicelAdapter
from serialcan.api.metrics import router as metrics_router
from serialcan.config import ConfigManager
from serialcan.exceptions import SerialCanError, ValidationError
from serialcan.models.can_frame import CanFrame, FrameKind
from serialcan.protocol import isotp

# Configure logging
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler: build the configured adapter and run its initialization sequence.

    An initialization failure keeps the API up (health reports it) but every
    adapter endpoint answers 503 until the adapter is reset and the service
    restarted.
    """
    config = ConfigManager()
    logging.getLogger("serialcan").setLevel(config.app.log_level.upper())
    app.state.config = config
    app.state.adapter = None
    app.state.init_error = None

    adapter = config.create_adapter()
    try:
        adapter.open()
        app.state.adapter = adapter
        logger.info("Adapter ready (transport=%s)", config.serial.transport)
    except SerialCanError as e:
        logger.error(f"Adapter initialization failed: {e}", exc_info=True)
        app.state.init_error = str(e)
        try:
            adapter.transport.close()
        except SerialCanError as close_err:
            logger.warning(f"Error closing transport: {close_err}", exc_info=True)

    try:
        yield
    finally:
        logger.info("Shutting down adapter...")
        if app.state.adapter is not None:
            try:
                app.state.adapter.close()
            except SerialCanError as e:
                logger.warning(f"Error closing adapter: {e}", exc_info=True)
            app.state.adapter = None


app = FastAPI(title="serialcan", lifespan=lifespan)
app.include_router(metrics_router)


@app.get("/api/health")
def health(request: Request):
    """Service health; `adapter` is 'ready', 'failed' or 'absent'."""
    state = getattr(request.app.state, "adapter", None)
    error = getattr(request.app.state, "init_error", None)
    adapter = "ready" if state is not None else ("failed" if error else "absent")
    return {"status": "ok", "service": "serialcan", "version": __version__, "adapter": adapter, "error": error}


def _adapter(request: Request) -> LawicelAdapter:
    adapter = getattr(request.app.state, "adapter", None)
    if adapter is None:
        raise HTTPException(status_code=503, detail="Adapter not available")
    return adapter


def _run(fn, *args, **kwargs):
    """Call into the adapter, mapping package errors to HTTP errors."""
    try:
        return fn(*args, **kwargs)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SerialCanError as e:
        logger.error(f"Adapter operation failed: {e}", exc_info=True)
        raise HTTPException(status_code=502, detail=str(e))


def _parse_frame_payload(payload: dict):
    can_id = payload.get("can_id")
    data_hex = payload.get("data")
    if can_id is None or data_hex is None:
        raise HTTPException(status_code=400, detail="can_id and data are required")
    try:
        can_id = int(can_id, 0) if isinstance(can_id, str) else int(can_id)
    except (ValueError, TypeError):
        raise HTTPException(status_code=400, detail=f"Invalid CAN ID format: {can_id}")
    try:
        data = bytes.fromhex(str(data_hex).replace(' ', '').replace('-', ''))
    except ValueError as e:
        logger.warning(f"Invalid hex data format: {str(data_hex)[:50]}")
        raise HTTPException(status_code=400, detail=f"data must be a valid hex string: {e}")
    kind = FrameKind.EXTENDED if payload.get("extended") else FrameKind.STANDARD
    return kind, can_id, data


def _frame_dict(frame: CanFrame) -> dict:
    return {
        "kind": frame.kind.value,
        "can_id": frame.identifier,
        "length": frame.length,
        "data": frame.data_hex,
        "timestamp": frame.timestamp,
    }


@app.get("/api/adapter/info")
def adapter_info(request: Request):
    adapter = _adapter(request)
    info = adapter.info()
    info["version"] = _run(adapter.version)
    info["serial"] = _run(adapter.serial_number)
    return info


@app.get("/api/adapter/status")
def adapter_status(request: Request):
    adapter = _adapter(request)
    return _run(adapter.status_flags).dump()


@app.post("/api/send-frame")
def api_send_frame(request: Request, payload: dict):
    """Transmit one frame.

    Payload: { "can_id": int, "data": "hexstring", "extended": bool }
    """
    adapter = _adapter(request)
    kind, can_id, data = _parse_frame_payload(payload)
    status = _run(adapter.transmit_frame, kind, can_id, len(data), data)
    logger.debug(f"Sent frame: can_id=0x{can_id:X}, data={data.hex()} -> {status.value}")
    return {"status": status.value}


@app.post("/api/receive")
def api_receive(request: Request, payload: dict):
    """Receive up to `count` frames, waiting at most `timeout` seconds for each.

    Payload: { "count": int (1-100), "timeout": float }
    """
    adapter = _adapter(request)
    try:
        count = int(payload.get("count", 1))
        timeout = float(payload.get("timeout", 1.0))
    except (ValueError, TypeError):
        raise HTTPException(status_code=400, detail="count and timeout must be numbers")
    if not (1 <= count <= 100) or timeout <= 0:
        raise HTTPException(status_code=400, detail="count must be 1-100 and timeout positive")
    frames = []
    while len(frames) < count:
        frame = _run(adapter.recv, timeout=timeout)
        if frame is None:
            break
        frames.append(_frame_dict(frame))
    return {"frames": frames}


def _segment_dict(segment) -> dict:
    return {
        "type": segment.header.name.lower(),
        "data": segment.pack().hex(),
        "errors": segment.errors(),
    }


@app.post("/api/isotp/split")
def api_isotp_split(payload: dict):
    """Preview the ISO-TP segments of a payload.

    Payload: { "data": "hexstring" }
    """
    try:
        data = bytes.fromhex(str(payload.get("data", "")).replace(' ', ''))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"data must be a valid hex string: {e}")
    segments = _run(isotp.split, data)
    return {"segments": [_segment_dict(s) for s in segments]}


@app.post("/api/isotp/send")
def api_isotp_send(request: Request, payload: dict):
    """Split a payload and transmit its segments.

    Payload: { "can_id": int, "data": "hexstring", "extended": bool }
    """
    adapter = _adapter(request)
    kind, can_id, data = _parse_frame_payload(payload)
    statuses = _run(adapter.send_isotp, kind, can_id, data)
    return {"statuses": [s.value for s in statuses]}

