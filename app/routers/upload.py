import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.concurrency import run_in_threadpool

from app.dependencies import get_current_user, get_user_store, get_video_processor
from app.services.user_store import UserStore
from app.services.video_processor import VideoProcessor
from app.utils.errors import MissingUploadError, PPEServiceError, StoreError
from app.utils.helpers import summarize_ppe_data

logger = logging.getLogger(__name__)

router = APIRouter()


def _record_outcome(store: UserStore, user_id: Optional[str], success: bool):
    if user_id is None:
        return
    try:
        store.record_upload(user_id, success)
    except StoreError as e:
        # counters are bookkeeping, the upload result still goes back to the client
        logger.error("Could not record upload outcome for %s: %s", user_id, e)


@router.post("")
async def upload_video(
    video: Optional[UploadFile] = File(None),
    user_id: Optional[str] = Depends(get_current_user),
    processor: VideoProcessor = Depends(get_video_processor),
    store: UserStore = Depends(get_user_store),
):
    """
    Receives a video (multipart field `video`), samples one frame per second and
    returns the per-frame PPE detections as `ppeData`.
    """
    try:
        if video is None or not video.filename:
            raise MissingUploadError()
        data = await video.read()
        if not data:
            raise MissingUploadError()
        logger.info("Video uploaded: %s (%d bytes)", video.filename, len(data))

        ppe_data = await run_in_threadpool(processor.process, data, video.filename)
    except PPEServiceError:
        _record_outcome(store, user_id, False)
        raise
    except Exception:
        logger.exception("Error processing video")
        _record_outcome(store, user_id, False)
        raise PPEServiceError("Error processing video")

    _record_outcome(store, user_id, True)
    logger.info("PPE summary: %s", summarize_ppe_data(ppe_data))
    return {"success": True, "ppeData": ppe_data}
