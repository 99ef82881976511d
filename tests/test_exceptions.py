"""
Tests for the exception hierarchy.
"""

import pytest

from shipflow.exceptions import (
    BuildError,
    CloneError,
    ConfigurationError,
    EnumerationError,
    ObjectNotFoundError,
    QueueError,
    ShipflowError,
    StorageError,
    SubmissionError,
    TransferError,
)


class TestHierarchy:
    """Verify all exceptions inherit from ShipflowError."""

    @pytest.mark.parametrize(
        "exc_class",
        [ConfigurationError, StorageError, CloneError, SubmissionError, BuildError, QueueError],
    )
    def test_inherits_base(self, exc_class):
        assert issubclass(exc_class, ShipflowError)

    @pytest.mark.parametrize("exc_class", [TransferError, EnumerationError, ObjectNotFoundError])
    def test_storage_errors(self, exc_class):
        assert issubclass(exc_class, StorageError)


class TestMessages:
    def test_base_message_and_details(self):
        err = ShipflowError("boom", details={"k": 1})
        assert str(err) == "boom"
        assert err.message == "boom"
        assert err.details == {"k": 1}

    def test_transfer_error_keeps_cause(self):
        cause = OSError("disk full")
        err = TransferError("/tmp/a.txt", "disk full", cause=cause)
        assert err.path == "/tmp/a.txt"
        assert err.__cause__ is cause
        assert "/tmp/a.txt" in str(err)

    def test_enumeration_error(self):
        err = EnumerationError("site/", "access denied")
        assert err.details == {"path": "site/"}

    def test_object_not_found(self):
        err = ObjectNotFoundError("dist/x/index.html")
        assert err.key == "dist/x/index.html"
        assert "dist/x/index.html" in err.message

    def test_submission_error_stage(self):
        err = SubmissionError("upload", "access denied", job_id="j1")
        assert err.stage == "upload"
        assert err.job_id == "j1"
        assert err.message == "Submission failed during upload: access denied"

    def test_build_error_exit_code(self):
        err = BuildError("j1", "exited with code 2", exit_code=2)
        assert err.exit_code == 2
        assert err.details["job_id"] == "j1"

    def test_clone_error(self):
        err = CloneError("https://x/r.git", "not found", exit_code=128)
        assert err.url == "https://x/r.git"
        assert err.exit_code == 128
