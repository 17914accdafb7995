"""HTTP API for the clinic registry.

Flask server with endpoints for:
- Specialty listings and opening slots
- Booking, cancelling and completing appointments
- Daily schedule, statistics and patient profiles

Run with: python -m clinic.api.server
"""
from datetime import date, datetime

from flask import Flask, current_app, jsonify, request
from flask_cors import CORS
from pydantic import ValidationError as RequestValidationError

from clinic import config
from clinic.api.models import BookingRequest, CompletionRequest, ErrorResponse, SlotRequest
from clinic.audit import AuditTrail, FileAuditSink
from clinic.errors import (
    AuditWriteError,
    InvalidTransitionError,
    NotFoundError,
    RegistryError,
    SlotUnavailableError,
    ValidationError,
)
from clinic.logging_config import RequestIDMiddleware, get_logger, setup_structured_logging
from clinic.registry import Registry
from clinic.roster import load_roster

logger = get_logger(__name__)

# RegistryError subclass -> (HTTP status, error code)
ERROR_STATUS = {
    NotFoundError: (404, "NOT_FOUND"),
    SlotUnavailableError: (409, "SLOT_UNAVAILABLE"),
    InvalidTransitionError: (400, "INVALID_TRANSITION"),
    ValidationError: (400, "VALIDATION_ERROR"),
}


def _error(message: str, status: int, code: str):
    return jsonify(ErrorResponse(error=message, code=code).model_dump()), status


def _registry() -> Registry:
    return current_app.extensions["clinic_registry"]


def _parse_body(model):
    data = request.get_json(silent=True)
    if not data:
        raise ValidationError("Request body is required")
    return model.model_validate(data)


def create_app(registry: Registry) -> Flask:
    """Build the Flask app serving ``registry``."""
    app = Flask(__name__)
    CORS(app)
    app.extensions["clinic_registry"] = registry
    app.wsgi_app = RequestIDMiddleware(app.wsgi_app)

    @app.errorhandler(RegistryError)
    def handle_registry_error(exc: RegistryError):
        status, code = ERROR_STATUS.get(type(exc), (400, "REGISTRY_ERROR"))
        logger.info("request_rejected", path=request.path, code=code, error=str(exc))
        return _error(str(exc), status, code)

    @app.errorhandler(RequestValidationError)
    def handle_request_validation(exc: RequestValidationError):
        logger.warning(
            "request_validation_failed",
            path=request.path,
            errors=exc.errors(include_context=False),
        )
        return _error(str(exc), 400, "VALIDATION_ERROR")

    @app.route('/doctors', methods=['GET'])
    def list_doctors():
        """GET /doctors?specialty=CARDIOLOGY - Doctors with their open slots."""
        specialty = request.args.get('specialty')
        if specialty:
            specialty = specialty.upper()
        listings = _registry().list_by_specialty(specialty)
        return jsonify({
            "success": True,
            "doctors": [d.to_dict() for d in listings],
            "total": len(listings)
        })

    @app.route('/doctors/<doctor_id>/slots', methods=['POST'])
    def open_slot(doctor_id):
        """POST /doctors/D001/slots - Open a slot for booking."""
        body = _parse_body(SlotRequest)
        registry = _registry()
        registry.open_slot(doctor_id, body.slot)
        return jsonify({
            "success": True,
            "doctor_id": doctor_id,
            "available_slots": [s.isoformat() for s in registry.doctor_slots(doctor_id)]
        }), 201

    @app.route('/patients/<patient_id>', methods=['GET'])
    def get_patient(patient_id):
        """GET /patients/P001 - Patient profile with medical history."""
        profile = _registry().patient_profile(patient_id)
        return jsonify({"success": True, "patient": profile.to_dict()})

    @app.route('/appointments', methods=['POST'])
    def create_appointment():
        """POST /appointments - Book an appointment.

        Expected JSON body:
        {
            "patient_id": "P001",
            "doctor_id": "D001",
            "slot": "2025-01-15T09:00:00"
        }
        """
        body = _parse_body(BookingRequest)
        registry = _registry()

        audit_warning = None
        try:
            appointment = registry.book_appointment(body.patient_id, body.doctor_id, body.slot)
        except AuditWriteError as e:
            # Booking is committed; the client still gets its appointment
            appointment = e.appointment
            audit_warning = str(e)

        response = {
            "success": True,
            "appointment": registry.describe_appointment(appointment.appointment_id).to_dict(),
            "message": f"Appointment confirmed! Id: {appointment.appointment_id}"
        }
        if audit_warning:
            response["audit_warning"] = audit_warning
        return jsonify(response), 201

    @app.route('/appointments', methods=['GET'])
    def list_appointments():
        """GET /appointments - Every appointment in booking order."""
        entries = _registry().list_appointments()
        return jsonify({
            "success": True,
            "appointments": [e.to_dict() for e in entries],
            "total": len(entries)
        })

    @app.route('/appointments/<appointment_id>', methods=['GET'])
    def get_appointment(appointment_id):
        entry = _registry().describe_appointment(appointment_id)
        return jsonify({"success": True, "appointment": entry.to_dict()})

    @app.route('/appointments/<appointment_id>', methods=['PATCH'])
    def cancel_appointment(appointment_id):
        """PATCH /appointments/APT-1001 - Cancel (status change only, nothing is deleted)."""
        registry = _registry()
        registry.cancel_appointment(appointment_id)
        return jsonify({
            "success": True,
            "message": f"Appointment {appointment_id} has been cancelled",
            "appointment": registry.describe_appointment(appointment_id).to_dict()
        })

    @app.route('/appointments/<appointment_id>/complete', methods=['POST'])
    def complete_appointment(appointment_id):
        """POST /appointments/APT-1001/complete - Complete with doctor's notes."""
        body = _parse_body(CompletionRequest)
        registry = _registry()
        registry.complete_appointment(appointment_id, body.notes)
        return jsonify({
            "success": True,
            "message": f"Appointment {appointment_id} has been completed",
            "appointment": registry.describe_appointment(appointment_id).to_dict()
        })

    @app.route('/schedule', methods=['GET'])
    def daily_schedule():
        """GET /schedule?date=2025-01-15 - Non-cancelled appointments of one day."""
        raw = request.args.get('date')
        if not raw:
            return _error("date parameter is required", 400, "VALIDATION_ERROR")
        try:
            day = date.fromisoformat(raw)
        except ValueError:
            return _error("Invalid date format. Use YYYY-MM-DD", 400, "VALIDATION_ERROR")

        entries = _registry().daily_schedule(day)
        return jsonify({
            "success": True,
            "date": day.isoformat(),
            "appointments": [e.to_dict() for e in entries],
            "total": len(entries)
        })

    @app.route('/statistics', methods=['GET'])
    def statistics():
        return jsonify({"success": True, "statistics": _registry().statistics().to_dict()})

    @app.route('/health', methods=['GET'])
    def health_check():
        """GET /health - Health check endpoint."""
        registry = _registry()
        return jsonify({
            "success": True,
            "status": "healthy",
            "clinic": registry.name,
            "total_appointments": registry.statistics().total_appointments,
            "timestamp": datetime.now().isoformat()
        })

    return app


def build_registry() -> Registry:
    """Registry for the standalone server: file audit sink, roster from ROSTER_PATH if set."""
    audit = AuditTrail(FileAuditSink(config.AUDIT_LOG_PATH))
    if config.ROSTER_PATH:
        return Registry.from_roster(load_roster(config.ROSTER_PATH), audit=audit)
    return Registry(audit=audit)


def main():
    setup_structured_logging(config.LOG_LEVEL, config.LOG_FORMAT)
    registry = build_registry()
    logger.info(
        "server_starting",
        clinic=registry.name,
        port=config.API_PORT,
        audit_log=config.AUDIT_LOG_PATH,
    )
    create_app(registry).run(host=config.API_HOST, port=config.API_PORT)


if __name__ == '__main__':
    main()
