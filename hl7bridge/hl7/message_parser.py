"""
HL7 v2.x message parser.

Wraps the ``hl7`` library to produce the immutable ``InboundMessage`` handed
to the bridge and the segment dictionaries consumed by the FHIR translator.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import hl7

logger = logging.getLogger(__name__)


class HL7ParseError(Exception):
    """Error parsing HL7 v2.x message."""
    pass


@dataclass(frozen=True)
class InboundMessage:
    """One HL7 v2 message received from the sender."""

    raw: str
    message_type: str
    control_id: str
    version: Optional[str] = None
    accept_ack_type: Optional[str] = None
    hl7_message: Any = field(default=None, compare=False, repr=False)

    def encode(self) -> str:
        return str(self.hl7_message) if self.hl7_message is not None else self.raw

    @property
    def enhanced_ack_mode(self) -> bool:
        """True when the sender asked for enhanced-mode (commit) acknowledgments."""
        return bool(self.accept_ack_type)


def normalize_segments(message: str) -> str:
    """Use carriage returns as the only segment terminator."""
    text = message.replace("\r\n", "\r").replace("\n", "\r")
    return "\r".join(line for line in text.split("\r") if line.strip())


class HL7MessageParser:
    """Parser for HL7 v2.x messages."""

    def parse_inbound(self, raw: str) -> InboundMessage:
        """
        Parse a raw message into an ``InboundMessage``.

        Raises:
            HL7ParseError: If the message has no MSH segment or message type
        """
        if not raw or not raw.strip():
            raise HL7ParseError("Empty message")

        normalized = normalize_segments(raw)
        try:
            parsed = hl7.parse(normalized)
            msh = parsed.segment("MSH")
        except Exception as e:
            raise HL7ParseError(f"Failed to parse HL7 message: {str(e)}") from e

        message_type = self._field(msh, 9)
        if not message_type:
            raise HL7ParseError("Missing message type in MSH.9")

        return InboundMessage(
            raw=normalized,
            message_type=message_type,
            control_id=self._field(msh, 10) or "",
            version=self._field(msh, 12),
            accept_ack_type=self._field(msh, 15),
            hl7_message=parsed,
        )

    def parse(self, message: str) -> Dict[str, Any]:
        """
        Parse an HL7 v2.x message string.

        Args:
            message: Raw HL7 v2.x message (pipe-delimited)

        Returns:
            Dictionary containing parsed message structure:
            - message_type: Message type (e.g., "ADT^A01", "ORU^R01")
            - msh: MSH segment data
            - pid: PID segment data (if present)
            - pv1: PV1 segment data (if present)
            - orc: List of ORC segments (if present)
            - obr: List of OBR segments (if present)
            - obx: List of OBX segments (if present)
            - order_groups: OBR segments with the OBX segments that follow them

        Raises:
            HL7ParseError: If message cannot be parsed
        """
        if not message or not message.strip():
            raise HL7ParseError("Empty message")

        try:
            parsed = hl7.parse(normalize_segments(message))

            msh = parsed.segment("MSH")
            message_type = self._field(msh, 9)
            if not message_type:
                raise HL7ParseError("Missing message type in MSH.9")

            result: Dict[str, Any] = {
                "message_type": message_type,
                "msh": self._parse_msh(msh),
            }

            order_groups: List[Dict[str, Any]] = []
            current: Optional[Dict[str, Any]] = None

            for segment in parsed:
                segment_id = str(segment[0])
                if segment_id == "PID" and "pid" not in result:
                    result["pid"] = self._parse_pid(segment)
                elif segment_id == "PV1" and "pv1" not in result:
                    result["pv1"] = self._parse_pv1(segment)
                elif segment_id == "ORC":
                    result.setdefault("orc", []).append(self._parse_orc(segment))
                elif segment_id == "OBR":
                    obr = self._parse_obr(segment)
                    result.setdefault("obr", []).append(obr)
                    current = {"obr": obr, "obx": []}
                    order_groups.append(current)
                elif segment_id == "OBX":
                    obx = self._parse_obx(segment)
                    result.setdefault("obx", []).append(obx)
                    if current is None:
                        # Results reported without an order
                        current = {"obr": None, "obx": []}
                        order_groups.append(current)
                    current["obx"].append(obx)

            result["order_groups"] = order_groups
            return result

        except HL7ParseError:
            raise
        except Exception as e:
            logger.error("Error parsing HL7 message: %s", str(e), exc_info=True)
            raise HL7ParseError(f"Failed to parse HL7 message: {str(e)}") from e

    @staticmethod
    def _field(segment, index: int) -> Optional[str]:
        if len(segment) > index:
            return str(segment[index]) or None
        return None

    def _parse_msh(self, msh) -> Dict[str, Any]:
        """Parse MSH (Message Header) segment."""
        return {
            "sending_application": self._field(msh, 3),
            "sending_facility": self._field(msh, 4),
            "receiving_application": self._field(msh, 5),
            "receiving_facility": self._field(msh, 6),
            "message_datetime": self._field(msh, 7),
            "message_type": self._field(msh, 9),
            "message_control_id": self._field(msh, 10),
            "processing_id": self._field(msh, 11),
            "version_id": self._field(msh, 12),
        }

    def _parse_pid(self, pid) -> Dict[str, Any]:
        """Parse PID (Patient Identification) segment."""
        patient_id = None
        patient_id_list = []
        identifiers = self._field(pid, 3)
        if identifiers:
            # PID.3 can repeat; only the first identifier is used
            id_component = identifiers.split("~")[0].split("^")
            patient_id = id_component[0] or None
            patient_id_list.append({
                "id": id_component[0],
                "type": id_component[4] if len(id_component) > 4 else None,
                "assigning_authority": id_component[3] if len(id_component) > 3 else None,
            })

        name = {}
        if self._field(pid, 5):
            name_parts = self._field(pid, 5).split("^")
            name = {
                "family": name_parts[0] if len(name_parts) > 0 else None,
                "given": name_parts[1] if len(name_parts) > 1 else None,
                "middle": name_parts[2] if len(name_parts) > 2 else None,
            }

        return {
            "patient_id": patient_id,
            "patient_id_list": patient_id_list,
            "name": name,
            "date_of_birth": self._field(pid, 7),
            "gender": self._field(pid, 8),
        }

    def _parse_pv1(self, pv1) -> Dict[str, Any]:
        """Parse PV1 (Patient Visit) segment."""
        return {
            "patient_class": self._field(pv1, 2),
            "assigned_location": self._field(pv1, 3),
            "admission_type": self._field(pv1, 4),
            "attending_doctor": self._parse_xcn(self._field(pv1, 7)),
            "admit_datetime": self._field(pv1, 44),
            "discharge_datetime": self._field(pv1, 45),
        }

    def _parse_obr(self, obr) -> Dict[str, Any]:
        """Parse OBR (Observation Request) segment."""
        return {
            "set_id": self._field(obr, 1),
            "placer_order_number": self._field(obr, 2),
            "filler_order_number": self._field(obr, 3),
            "universal_service_id": self._parse_ce(self._field(obr, 4)),
            "observation_datetime": self._field(obr, 7),
            "ordering_provider": self._parse_xcn(self._field(obr, 16)),
            "result_status": self._field(obr, 25),
        }

    def _parse_obx(self, obx) -> Dict[str, Any]:
        """Parse OBX (Observation/Result) segment."""
        return {
            "set_id": self._field(obx, 1),
            "value_type": self._field(obx, 2),
            "observation_id": self._parse_ce(self._field(obx, 3)),
            "observation_value": self._field(obx, 5),
            "units": self._field(obx, 6),
            "reference_range": self._field(obx, 7),
            "abnormal_flags": self._field(obx, 8),
            "status": self._field(obx, 11) or "F",
            "observation_datetime": self._field(obx, 14),
        }

    def _parse_orc(self, orc) -> Dict[str, Any]:
        """Parse ORC (Common Order) segment."""
        return {
            "order_control": self._field(orc, 1),
            "placer_order_number": self._field(orc, 2),
            "filler_order_number": self._field(orc, 3),
            "ordering_provider": self._parse_xcn(self._field(orc, 12)),
        }

    def _parse_ce(self, field_value) -> Dict[str, Any]:
        """Parse CE (Coded Element) field."""
        if not field_value:
            return {}
        parts = str(field_value).split("^")
        return {
            "code": parts[0] if len(parts) > 0 else None,
            "text": parts[1] if len(parts) > 1 else None,
            "coding_system": parts[2] if len(parts) > 2 else None,
        }

    def _parse_xcn(self, field_value) -> Dict[str, Any]:
        """Parse XCN (Extended Composite ID Number and Name) field."""
        if not field_value:
            return {}
        parts = str(field_value).split("^")
        return {
            "id": parts[0] if len(parts) > 0 else None,
            "family_name": parts[1] if len(parts) > 1 else None,
            "given_name": parts[2] if len(parts) > 2 else None,
        }
