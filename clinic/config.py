"""Configuration for the clinic appointment registry.

Values come from the environment (or a local .env file) so deployments can
change them without touching code.
"""
import os

from dotenv import load_dotenv

load_dotenv()

CLINIC_NAME = os.getenv("CLINIC_NAME", "Downtown Medical Center")

# Appointment ids: APT-1001, APT-1002, ...
APPOINTMENT_ID_PREFIX = "APT"
APPOINTMENT_ID_START = 1001

DATETIME_DISPLAY_FORMAT = "%d/%m/%Y %H:%M"

# Audit sink
AUDIT_LOG_PATH = os.getenv("AUDIT_LOG_PATH", "appointments.txt")
AUDIT_MAX_ATTEMPTS = int(os.getenv("AUDIT_MAX_ATTEMPTS", "3"))
AUDIT_BACKOFF_SECONDS = float(os.getenv("AUDIT_BACKOFF_SECONDS", "0.5"))
AUDIT_FAILURE_THRESHOLD = int(os.getenv("AUDIT_FAILURE_THRESHOLD", "5"))
AUDIT_RESET_TIMEOUT = int(os.getenv("AUDIT_RESET_TIMEOUT", "60"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "json")

# API Configuration
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "5000"))
ROSTER_PATH = os.getenv("ROSTER_PATH")
