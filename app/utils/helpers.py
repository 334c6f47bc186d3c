import os
import re

DEFAULT_VIDEO_NAME = "upload.mp4"


def safe_video_filename(filename):
    """
    Strip any directory part and unusual characters from a client supplied file name.
    Falls back to upload.mp4 when nothing usable is left.
    """
    name = os.path.basename((filename or "").replace("\\", "/"))
    name = re.sub(r"[^A-Za-z0-9._-]", "_", name).lstrip(".")
    return name or DEFAULT_VIDEO_NAME


def format_frame_result(frame_index, file_name, persons):
    return {
        "frame_index": frame_index,
        "file": file_name,
        "person_count": len(persons),
        "persons": persons,
    }


def summarize_ppe_data(ppe_data):
    """
    Totals across all analyzed frames, used for the upload log line.

    Returns:
        dict: frames, persons and how many person records had each cover detected.
    """
    totals = {
        "frames": len(ppe_data),
        "persons": 0,
        "face_cover": 0,
        "head_cover": 0,
        "body_cover": 0,
        "hand_cover": 0,
    }
    for frame in ppe_data:
        for person in frame.get("persons", []):
            totals["persons"] += 1
            for key in ("face_cover", "head_cover", "body_cover", "hand_cover"):
                if person.get(key, {}).get("detected"):
                    totals[key] += 1
    return totals
