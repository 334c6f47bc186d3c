import cv2
import mongomock
import numpy as np
import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient

from app.config import Settings, get_settings
from app.dependencies import get_detector, get_user_store, get_video_processor
from app.main import app
from app.services.frame_extractor import FRAME_PATTERN, list_frames
from app.services.ppe_detector import RekognitionPPEDetector
from app.services.user_store import UserStore
from app.services.video_processor import VideoProcessor


def rekognition_person(person_id=0, helmet=True, mask=False, gloves=False):
    """A DetectProtectiveEquipment person entry with face, head and both hands."""
    face_equipment = [{"Type": "FACE_COVER", "Confidence": 97.123}] if mask else []
    head_equipment = [{"Type": "HEAD_COVER", "Confidence": 99.4567}] if helmet else []
    hand_equipment = [{"Type": "HAND_COVER", "Confidence": 88.8}] if gloves else []
    return {
        "Id": person_id,
        "Confidence": 99.987,
        "BodyParts": [
            {"Name": "FACE", "Confidence": 99.5, "EquipmentDetections": face_equipment},
            {"Name": "HEAD", "Confidence": 98.25, "EquipmentDetections": head_equipment},
            {"Name": "LEFT_HAND", "Confidence": 90.0, "EquipmentDetections": hand_equipment},
            {"Name": "RIGHT_HAND", "Confidence": 95.0, "EquipmentDetections": []},
        ],
    }


class FakeRekognitionClient:
    """Stands in for the boto3 client; fails on the call numbers listed in fail_on."""

    def __init__(self, persons=None, fail_on=()):
        self.persons = persons if persons is not None else [rekognition_person()]
        self.fail_on = set(fail_on)
        self.calls = 0
        self.images = []

    def detect_protective_equipment(self, Image):
        self.calls += 1
        self.images.append(Image["Bytes"])
        if self.calls in self.fail_on:
            raise ClientError(
                {"Error": {"Code": "InvalidImageFormatException", "Message": "bad image"}},
                "DetectProtectiveEquipment",
            )
        return {"ProtectiveEquipmentModelVersion": "1.0", "Persons": self.persons}


def fake_extractor(frame_count, width=320, height=240):
    """Returns an extract_frames replacement that writes `frame_count` PNGs."""
    calls = []

    def extract(video_path, output_dir, **kwargs):
        calls.append(video_path)
        for i in range(1, frame_count + 1):
            image = np.full((height, width, 3), i * 20 % 256, dtype=np.uint8)
            cv2.imwrite(f"{output_dir}/{FRAME_PATTERN % i}", image)
        return list_frames(output_dir)

    extract.calls = calls
    return extract


@pytest.fixture
def settings(tmp_path):
    temp_root = tmp_path / "work"
    temp_root.mkdir()
    return Settings(frames_temp_root=str(temp_root), jwt_secret="test-secret")


@pytest.fixture
def user_store():
    return UserStore(client=mongomock.MongoClient())


@pytest.fixture
def rekognition_client():
    return FakeRekognitionClient()


@pytest.fixture
def detector(rekognition_client):
    return RekognitionPPEDetector(client=rekognition_client)


@pytest.fixture
def client(settings, user_store, detector):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_user_store] = lambda: user_store
    app.dependency_overrides[get_detector] = lambda: detector
    app.dependency_overrides[get_video_processor] = lambda: VideoProcessor(
        settings, detector, extract_frames=fake_extractor(3)
    )
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
