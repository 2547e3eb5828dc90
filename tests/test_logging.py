import logging

from households.core.logging import VoterPIIFilter, logging_config


def _logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)
    logger.filters = []
    logger.addFilter(VoterPIIFilter())
    return logger


def test_pii_filter_redacts_epic_and_mobile(caplog):
    logger = _logger("test.voter_pii")

    with caplog.at_level(logging.INFO, logger="test.voter_pii"):
        logger.info("Voter ABC1234567 reachable on +91 9876543210")

    assert "ABC1234567" not in caplog.text
    assert "9876543210" not in caplog.text
    assert "[REDACTED]" in caplog.text


def test_pii_filter_redacts_aadhaar_in_args(caplog):
    logger = _logger("test.voter_args")

    with caplog.at_level(logging.INFO, logger="test.voter_args"):
        logger.info("Imported record with id %s", "2345 6789 0123")

    assert "2345 6789 0123" not in caplog.text
    assert "[REDACTED]" in caplog.text


def test_pii_filter_redacts_mobile_label(caplog):
    logger = _logger("test.voter_label")

    with caplog.at_level(logging.INFO, logger="test.voter_label"):
        logger.info("updating mobile_no=0442345678 for household")

    assert "0442345678" not in caplog.text
    assert "mobile_no=[REDACTED]" in caplog.text


def test_pii_filter_keeps_family_ids(caplog):
    logger = _logger("test.voter_family")

    with caplog.at_level(logging.INFO, logger="test.voter_family"):
        logger.info("Family %s created with %d members", "FAM0012", 3)

    assert "Family FAM0012 created with 3 members" in caplog.text


def test_pii_filter_redacts_address_label(caplog):
    logger = _logger("test.voter_address")

    with caplog.at_level(logging.INFO, logger="test.voter_address"):
        logger.info("bad row address=12/Main, skipped")

    assert "12/Main" not in caplog.text
    assert "address=[REDACTED]" in caplog.text


def test_logging_config_attaches_filter_to_console():
    config = logging_config("debug")

    assert config["loggers"][""]["level"] == "DEBUG"
    assert config["handlers"]["console"]["filters"] == ["voter_pii"]
    assert config["filters"]["voter_pii"]["()"] == "households.core.logging.VoterPIIFilter"
