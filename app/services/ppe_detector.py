import json
import logging
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.utils.errors import DetectorError

logger = logging.getLogger(__name__)

# Rekognition body part names -> attribute names in our per-person records
BODY_PART_ATTRIBUTES = {
    "FACE": "face",
    "HEAD": "head",
    "BODY": "body",
    "LEFT_HAND": "hand",
    "RIGHT_HAND": "hand",
    "HAND": "hand",
}

# Rekognition equipment types -> attribute names
EQUIPMENT_ATTRIBUTES = {
    "FACE_COVER": "face_cover",
    "HEAD_COVER": "head_cover",
    "BODY_COVER": "body_cover",
    "HAND_COVER": "hand_cover",
}

PERSON_ATTRIBUTES = [
    "face", "face_cover",
    "head", "head_cover",
    "body", "body_cover",
    "hand", "hand_cover",
]


def _round_confidence(value) -> Optional[float]:
    if value is None:
        return None
    return round(float(value), 2)


def _merge(record: Dict[str, Any], attribute: str, confidence) -> None:
    entry = record[attribute]
    entry["detected"] = True
    confidence = _round_confidence(confidence)
    if confidence is not None and (entry["confidence"] is None or confidence > entry["confidence"]):
        entry["confidence"] = confidence


def normalize_person(person: Dict[str, Any], index: int) -> Dict[str, Any]:
    """
    Flatten one Rekognition person into presence + confidence per attribute.

    Every attribute is always present in the output; undetected ones carry
    detected=False and confidence=None. When several body parts map to the same
    attribute (left and right hand) the highest confidence wins.
    """
    record = {
        "person_id": person.get("Id", index),
        "confidence": _round_confidence(person.get("Confidence", 0.0)),
    }
    for attribute in PERSON_ATTRIBUTES:
        record[attribute] = {"detected": False, "confidence": None}

    for body_part in person.get("BodyParts", []):
        part_attribute = BODY_PART_ATTRIBUTES.get(body_part.get("Name"))
        if part_attribute is None:
            continue
        _merge(record, part_attribute, body_part.get("Confidence"))

        for equipment in body_part.get("EquipmentDetections", []):
            equipment_attribute = EQUIPMENT_ATTRIBUTES.get(equipment.get("Type"))
            # a cover only counts under its own body part, and only when it is worn
            if equipment_attribute != part_attribute + "_cover":
                continue
            if equipment.get("CoversBodyPart", {}).get("Value") is False:
                continue
            _merge(record, equipment_attribute, equipment.get("Confidence"))

    return record


def normalize_response(response: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [normalize_person(person, i) for i, person in enumerate(response.get("Persons", []))]


class RekognitionPPEDetector:
    def __init__(self, client=None, region_name: str = "us-east-1"):
        self.client = client or boto3.client("rekognition", region_name=region_name)

    def detect(self, image_bytes: bytes) -> List[Dict[str, Any]]:
        """
        Run protective equipment detection on one encoded image and return the
        normalized per-person records.
        """
        try:
            response = self.client.detect_protective_equipment(Image={"Bytes": image_bytes})
        except (ClientError, BotoCoreError) as e:
            logger.error("Error detecting PPE: %s", e)
            raise DetectorError(f"Error detecting PPE: {e}")

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Full PPE detection result: %s",
                         json.dumps(response.get("Persons", []), indent=2, default=str))
        return normalize_response(response)
