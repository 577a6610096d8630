"""
HL7 v2.x to FHIR resource converter.

Converts HL7 v2.x messages to FHIR R4 resources and packages them as
``message`` Bundles ready for the ``$process-message`` operation.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from hl7bridge.hl7.message_parser import HL7MessageParser, HL7ParseError, InboundMessage
from hl7bridge.hl7.message_router import HL7MessageRouter

logger = logging.getLogger(__name__)

Payload = Dict[str, Any]

# Namespace for name-based resource ids; ids depend only on message content
RESOURCE_ID_NAMESPACE = uuid.UUID("6f1c9d3e-5b0a-4f8e-9c2d-7a4b1e0f3c58")

V2_EVENT_SYSTEM = "http://terminology.hl7.org/CodeSystem/v2-0003"
INTERPRETATION_SYSTEM = "http://terminology.hl7.org/CodeSystem/v3-ObservationInterpretation"
ACT_CODE_SYSTEM = "http://terminology.hl7.org/CodeSystem/v3-ActCode"
UCUM_SYSTEM = "http://unitsofmeasure.org"

CODING_SYSTEMS = {
    "LN": "http://loinc.org",
    "SCT": "http://snomed.info/sct",
    "SNM": "http://snomed.info/sct",
    "I10": "http://hl7.org/fhir/sid/icd-10",
}

RESULT_STATUS = {
    "F": "final",
    "P": "preliminary",
    "C": "corrected",
    "X": "cancelled",
    "D": "entered-in-error",
    "I": "registered",
}

ACTIONABLE_ORDER_CONTROLS = {"NW", "OK", "SC", "XO"}


class TranslationError(Exception):
    """Error converting an HL7 v2.x message to FHIR payloads."""
    pass


class HL7ToFHIRConverter:
    """Converter from HL7 v2.x to FHIR R4 resources."""

    def __init__(self, parser: Optional[HL7MessageParser] = None):
        self.parser = parser or HL7MessageParser()
        self.router = HL7MessageRouter()
        self.router.register_handler("ADT^*", self._bundle_admission)
        self.router.register_handler("ORU^*", self._bundle_results)
        self.router.register_handler("ORM^*", self._bundle_orders)
        self.router.register_handler("OMP^*", self._bundle_orders)

    def supported_message_types(self) -> List[str]:
        return self.router.get_supported_types()

    def translate(self, message: InboundMessage) -> List[Payload]:
        """
        Translate one inbound message into an ordered list of message Bundles.

        Args:
            message: Parsed inbound message; it is only read

        Returns:
            Bundles in delivery order (possibly empty)

        Raises:
            TranslationError: If the message is malformed or of an unsupported type
        """
        try:
            parsed = self.parser.parse(message.raw)
        except HL7ParseError as e:
            raise TranslationError(str(e)) from e

        if not self.router.supports(parsed["message_type"]):
            raise TranslationError(f"Unsupported message type: {parsed['message_type']}")

        context = dict(parsed)
        context["id_seed"] = message.control_id or message.raw
        bundles = self.router.route(context)
        logger.debug(
            "Translated %s message %s into %d bundle(s)",
            message.message_type,
            message.control_id,
            len(bundles),
        )
        return bundles

    def convert(self, parsed_message: Dict[str, Any]) -> Dict[str, Any]:
        """
        Convert a parsed HL7 v2.x message to FHIR resources.

        Args:
            parsed_message: Parsed HL7 message from HL7MessageParser

        Returns:
            Dictionary containing FHIR resources:
            - patient: Patient resource (if PID present)
            - observations: List of Observation resources (if OBX present)
            - encounters: List of Encounter resources (if PV1 present)
            - medication_requests: List of MedicationRequest resources (if ORC present)
        """
        seed = parsed_message.get("id_seed") or parsed_message["msh"].get("message_control_id") or ""
        resources: Dict[str, Any] = {
            "patient": None,
            "observations": [],
            "encounters": [],
            "medication_requests": [],
        }

        patient_ref = None
        if "pid" in parsed_message:
            resources["patient"] = self._convert_patient(parsed_message["pid"], seed)
            patient_ref = _reference(resources["patient"])

        for index, obx in enumerate(parsed_message.get("obx", [])):
            observation = self._convert_observation(obx, patient_ref, _resource_id(seed, "obx", index))
            if observation:
                resources["observations"].append(observation)

        if "pv1" in parsed_message and patient_ref:
            resources["encounters"].append(
                self._convert_encounter(
                    parsed_message["pv1"],
                    patient_ref,
                    parsed_message.get("message_type", ""),
                    _resource_id(seed, "pv1", 0),
                )
            )

        if patient_ref:
            for index, orc in enumerate(parsed_message.get("orc", [])):
                if orc.get("order_control") in ACTIONABLE_ORDER_CONTROLS:
                    resources["medication_requests"].append(
                        self._convert_medication_request(orc, patient_ref, _resource_id(seed, "orc", index))
                    )

        return resources

    # Bundlers, one per message category

    def _bundle_admission(self, parsed: Dict[str, Any]) -> List[Payload]:
        resources = self.convert(parsed)
        if resources["patient"] is None:
            raise TranslationError("ADT message has no PID segment")
        return [self._message_bundle(parsed, 0, [resources["patient"], *resources["encounters"]])]

    def _bundle_results(self, parsed: Dict[str, Any]) -> List[Payload]:
        groups = parsed.get("order_groups", [])
        if not groups:
            return []
        if "pid" not in parsed:
            raise TranslationError("ORU message has no PID segment")

        seed = parsed["id_seed"]
        patient = self._convert_patient(parsed["pid"], seed)
        patient_ref = _reference(patient)

        bundles = []
        obx_index = 0
        for group_index, group in enumerate(groups):
            observations = []
            for obx in group["obx"]:
                observation = self._convert_observation(obx, patient_ref, _resource_id(seed, "obx", obx_index))
                obx_index += 1
                if observation:
                    observations.append(observation)

            focus: List[Dict[str, Any]] = []
            if group["obr"] is not None:
                focus.append(
                    self._convert_diagnostic_report(
                        group["obr"],
                        patient_ref,
                        observations,
                        _resource_id(seed, "obr", group_index),
                    )
                )
            focus.extend(observations)
            bundles.append(self._message_bundle(parsed, group_index, [patient, *focus]))
        return bundles

    def _bundle_orders(self, parsed: Dict[str, Any]) -> List[Payload]:
        resources = self.convert(parsed)
        if resources["patient"] is None:
            raise TranslationError("Order message has no PID segment")
        if not resources["medication_requests"]:
            logger.info("Order message contains no actionable ORC segments")
            return []
        return [self._message_bundle(parsed, 0, [resources["patient"], *resources["medication_requests"]])]

    def _message_bundle(self, parsed: Dict[str, Any], index: int, resources: List[Dict[str, Any]]) -> Payload:
        """Wrap resources in a message Bundle headed by a MessageHeader."""
        seed = parsed["id_seed"]
        msh = parsed["msh"]
        message_type = parsed.get("message_type", "")
        type_parts = message_type.split("^")
        event_code = type_parts[1] if len(type_parts) > 1 and type_parts[1] else type_parts[0]

        header: Dict[str, Any] = {
            "resourceType": "MessageHeader",
            "id": _resource_id(seed, "header", index),
            "eventCoding": {"system": V2_EVENT_SYSTEM, "code": event_code},
            "source": {
                "name": msh.get("sending_application") or "unknown",
                "endpoint": f"urn:hl7v2:{msh.get('sending_application') or 'unknown'}",
            },
            "destination": [{
                "name": msh.get("receiving_application") or "unknown",
                "endpoint": f"urn:hl7v2:{msh.get('receiving_application') or 'unknown'}",
            }],
            "focus": [{"reference": _reference(r)} for r in resources if r["resourceType"] != "Patient"],
        }
        if not header["focus"]:
            header["focus"] = [{"reference": _reference(r)} for r in resources]

        bundle: Payload = {
            "resourceType": "Bundle",
            "id": _resource_id(seed, "bundle", index),
            "type": "message",
            "entry": [
                {"fullUrl": _reference(resource), "resource": resource}
                for resource in [header, *resources]
            ],
        }
        timestamp = self._parse_hl7_datetime(msh.get("message_datetime"))
        if timestamp:
            bundle["timestamp"] = timestamp
        return bundle

    # Resource builders

    def _convert_patient(self, pid: Dict[str, Any], seed: str) -> Dict[str, Any]:
        """Convert PID segment to FHIR Patient resource."""
        gender_map = {
            "M": "male",
            "F": "female",
            "O": "other",
            "U": "unknown",
        }

        patient: Dict[str, Any] = {
            "resourceType": "Patient",
            "id": _resource_id(seed, "patient", 0),
            "identifier": [],
            "gender": gender_map.get((pid.get("gender") or "").upper(), "unknown"),
        }

        for pid_entry in pid.get("patient_id_list", []):
            if not pid_entry.get("id"):
                continue
            identifier: Dict[str, Any] = {"use": "usual", "value": pid_entry["id"]}
            if pid_entry.get("type"):
                identifier["type"] = {"coding": [{"code": pid_entry["type"]}]}
            if pid_entry.get("assigning_authority"):
                identifier["assigner"] = {"display": pid_entry["assigning_authority"]}
            patient["identifier"].append(identifier)

        name_data = pid.get("name", {})
        if name_data.get("family") or name_data.get("given"):
            name: Dict[str, Any] = {"use": "official"}
            if name_data.get("family"):
                name["family"] = name_data["family"]
            given = [g for g in [name_data.get("given"), name_data.get("middle")] if g]
            if given:
                name["given"] = given
            patient["name"] = [name]

        birth_date = self._parse_hl7_date(pid.get("date_of_birth"))
        if birth_date:
            patient["birthDate"] = birth_date

        return patient

    def _convert_observation(
        self,
        obx: Dict[str, Any],
        patient_ref: Optional[str],
        resource_id: str,
    ) -> Optional[Dict[str, Any]]:
        """Convert OBX segment to FHIR Observation resource."""
        obs_id = obx.get("observation_id") or {}
        if not obs_id.get("code") and not obs_id.get("text"):
            logger.warning("OBX segment missing observation ID, skipping")
            return None

        code = obs_id.get("code") or obs_id.get("text")
        display = obs_id.get("text") or code
        coding: Dict[str, Any] = {"code": code, "display": display}
        system = CODING_SYSTEMS.get((obs_id.get("coding_system") or "").upper())
        if system:
            coding["system"] = system
        elif code.replace("-", "").isdigit():
            coding["system"] = CODING_SYSTEMS["LN"]

        observation: Dict[str, Any] = {
            "resourceType": "Observation",
            "id": resource_id,
            "status": RESULT_STATUS.get((obx.get("status") or "F").upper(), "final"),
            "code": {"coding": [coding], "text": display},
        }
        if patient_ref:
            observation["subject"] = {"reference": patient_ref}

        value = obx.get("observation_value")
        if value:
            if obx.get("value_type") in ("NM", "SN"):
                try:
                    quantity: Dict[str, Any] = {"value": float(value)}
                except ValueError:
                    observation["valueString"] = value
                else:
                    if obx.get("units"):
                        quantity.update(unit=obx["units"], system=UCUM_SYSTEM, code=obx["units"])
                    observation["valueQuantity"] = quantity
            else:
                observation["valueString"] = value

        if obx.get("reference_range"):
            observation["referenceRange"] = [{"text": obx["reference_range"]}]

        flag = (obx.get("abnormal_flags") or "").upper()
        interpretation = {
            "L": "Low",
            "H": "High",
            "LL": "Critical low",
            "HH": "Critical high",
            "N": "Normal",
            "A": "Abnormal",
        }.get(flag)
        if interpretation:
            observation["interpretation"] = [{
                "coding": [{"system": INTERPRETATION_SYSTEM, "code": flag, "display": interpretation}],
            }]

        effective = self._parse_hl7_datetime(obx.get("observation_datetime"))
        if effective:
            observation["effectiveDateTime"] = effective

        return observation

    def _convert_diagnostic_report(
        self,
        obr: Dict[str, Any],
        patient_ref: str,
        observations: List[Dict[str, Any]],
        resource_id: str,
    ) -> Dict[str, Any]:
        """Convert OBR segment and its results to a FHIR DiagnosticReport."""
        service = obr.get("universal_service_id") or {}
        code: Dict[str, Any] = {"text": service.get("text") or service.get("code") or "unknown"}
        if service.get("code"):
            coding: Dict[str, Any] = {"code": service["code"]}
            if service.get("text"):
                coding["display"] = service["text"]
            system = CODING_SYSTEMS.get((service.get("coding_system") or "").upper())
            if system:
                coding["system"] = system
            code["coding"] = [coding]

        report: Dict[str, Any] = {
            "resourceType": "DiagnosticReport",
            "id": resource_id,
            "status": RESULT_STATUS.get((obr.get("result_status") or "F").upper(), "final"),
            "code": code,
            "subject": {"reference": patient_ref},
            "result": [{"reference": _reference(obs)} for obs in observations],
        }

        identifiers = []
        for key, type_code in (("placer_order_number", "PLAC"), ("filler_order_number", "FILL")):
            if obr.get(key):
                identifiers.append({
                    "type": {"coding": [{"code": type_code}]},
                    "value": obr[key].split("^")[0],
                })
        if identifiers:
            report["identifier"] = identifiers

        effective = self._parse_hl7_datetime(obr.get("observation_datetime"))
        if effective:
            report["effectiveDateTime"] = effective

        return report

    def _convert_encounter(
        self,
        pv1: Dict[str, Any],
        patient_ref: str,
        message_type: str,
        resource_id: str,
    ) -> Dict[str, Any]:
        """Convert PV1 segment to FHIR Encounter resource."""
        class_map = {
            "I": ("IMP", "inpatient encounter"),
            "O": ("AMB", "ambulatory"),
            "E": ("EMER", "emergency"),
            "P": ("PRENC", "pre-admission"),
            "R": ("AMB", "ambulatory"),
            "B": ("IMP", "inpatient encounter"),
            "N": ("NONAC", "non-acute"),
        }
        class_code, class_display = class_map.get(pv1.get("patient_class") or "", ("AMB", "ambulatory"))

        encounter: Dict[str, Any] = {
            "resourceType": "Encounter",
            "id": resource_id,
            "status": self._map_encounter_status(message_type),
            "class": {"system": ACT_CODE_SYSTEM, "code": class_code, "display": class_display},
            "subject": {"reference": patient_ref},
        }

        if pv1.get("assigned_location"):
            encounter["location"] = [{
                "location": {"display": pv1["assigned_location"].split("^")[0]},
            }]

        attending = pv1.get("attending_doctor") or {}
        if attending.get("family_name") or attending.get("id"):
            display = " ".join(
                part for part in (attending.get("given_name"), attending.get("family_name")) if part
            )
            encounter["participant"] = [{"individual": {"display": display or attending["id"]}}]

        period = {}
        start = self._parse_hl7_datetime(pv1.get("admit_datetime"))
        if start:
            period["start"] = start
        end = self._parse_hl7_datetime(pv1.get("discharge_datetime"))
        if end:
            period["end"] = end
        if period:
            encounter["period"] = period

        return encounter

    def _convert_medication_request(
        self,
        orc: Dict[str, Any],
        patient_ref: str,
        resource_id: str,
    ) -> Dict[str, Any]:
        """Convert ORC segment to FHIR MedicationRequest resource."""
        med_request: Dict[str, Any] = {
            "resourceType": "MedicationRequest",
            "id": resource_id,
            "status": "active",
            "intent": "order",
            "subject": {"reference": patient_ref},
        }
        if orc.get("placer_order_number"):
            med_request["identifier"] = [{"value": orc["placer_order_number"].split("^")[0]}]

        provider = orc.get("ordering_provider") or {}
        display = " ".join(
            part for part in (provider.get("given_name"), provider.get("family_name")) if part
        )
        if display:
            med_request["requester"] = {"display": display}

        return med_request

    # Value mapping helpers

    def _parse_hl7_date(self, date_str: Optional[str]) -> Optional[str]:
        """Parse HL7 date format (YYYYMMDD) to ISO format."""
        if not date_str or len(date_str) < 8 or not date_str[:8].isdigit():
            return None
        return f"{date_str[0:4]}-{date_str[4:6]}-{date_str[6:8]}"

    def _parse_hl7_datetime(self, datetime_str: Optional[str]) -> Optional[str]:
        """Parse HL7 datetime format (YYYYMMDDHHMM[SS][+ZZZZ]) to ISO format."""
        if not datetime_str:
            return None
        offset = None
        dt_str = datetime_str
        for sign in ("+", "-"):
            if sign in dt_str[8:]:
                dt_str, zone = dt_str.split(sign, 1)
                if len(zone) == 4 and zone.isdigit():
                    offset = f"{sign}{zone[:2]}:{zone[2:]}"
                break
        dt_str = dt_str.split(".")[0]
        if not dt_str.isdigit():
            return None
        if len(dt_str) >= 12:
            seconds = dt_str[12:14] if len(dt_str) >= 14 else "00"
            return (
                f"{dt_str[0:4]}-{dt_str[4:6]}-{dt_str[6:8]}"
                f"T{dt_str[8:10]}:{dt_str[10:12]}:{seconds}{offset or 'Z'}"
            )
        return self._parse_hl7_date(dt_str)

    def _map_encounter_status(self, message_type: str) -> str:
        """Map ADT trigger event to encounter status."""
        if any(event in message_type for event in ("A01", "A02", "A04")):  # Admit, transfer, register
            return "in-progress"
        if any(event in message_type for event in ("A03", "A06")):  # Discharge
            return "finished"
        if "A11" in message_type:  # Cancel admit
            return "cancelled"
        return "planned"


def _resource_id(seed: str, kind: str, index: int) -> str:
    return str(uuid.uuid5(RESOURCE_ID_NAMESPACE, f"{seed}/{kind}/{index}"))


def _reference(resource: Dict[str, Any]) -> str:
    return f"urn:uuid:{resource['id']}"
