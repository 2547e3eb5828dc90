import logging
import logging.config
import re

# Voter rolls carry Indian identifiers; none of them may reach the log stream.
VALUE_PATTERNS = [
    re.compile(r"\b[A-Z]{3}\d{7}\b"),  # EPIC (electoral roll) number
    re.compile(r"\b\d{4}\s?\d{4}\s?\d{4}\b"),  # Aadhaar
    re.compile(r"(?<!\d)(?:\+91[-\s]?)?[6-9]\d{9}\b"),  # mobile number
]

# "label=value" pairs whose value is redacted whatever it looks like.
LABEL_PATTERN = re.compile(
    r"(?i)\b((?:mobile(?:_?no)?|phone|aadhaar|epic(?:_?no)?|address)\s*[=:]\s*)([^,\s]+)"
)

REDACTED = "[REDACTED]"


class VoterPIIFilter(logging.Filter):
    def _sanitize(self, value: object) -> object:
        if not isinstance(value, str):
            return value

        redacted = LABEL_PATTERN.sub(rf"\1{REDACTED}", value)
        for pattern in VALUE_PATTERNS:
            redacted = pattern.sub(REDACTED, redacted)
        return redacted

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = self._sanitize(record.msg)

        if isinstance(record.args, tuple):
            record.args = tuple(self._sanitize(item) for item in record.args)
        elif isinstance(record.args, dict):
            record.args = {key: self._sanitize(value) for key, value in record.args.items()}

        return True


def logging_config(level: str) -> dict:
    level = level.upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "voter_pii": {"()": "households.core.logging.VoterPIIFilter"},
        },
        "formatters": {
            "default": {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "filters": ["voter_pii"],
            }
        },
        "loggers": {
            "": {"handlers": ["console"], "level": level},
            # bound parameters would print voter rows
            "sqlalchemy.engine": {"level": "WARNING"},
            "uvicorn.access": {"handlers": ["console"], "level": "WARNING", "propagate": False},
        },
    }


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger once per process; *level* overrides LOG_LEVEL."""
    from households.core.settings import get_settings

    logging.config.dictConfig(logging_config(level or get_settings().log_level))
