"""
Data model tests.
"""
import socket

import pytest

from core.context import CheckResult, IPFamily, ProbeReport, Protocol, TLSARecord


class TestCheckResult:
    def test_unreachable_has_no_verdict(self):
        result = CheckResult.unreachable(Protocol.SMTP, IPFamily.V6, 15.0, "timeout")
        assert result.reachable is False
        assert result.certificate_valid is False
        assert result.observed_digest == ""
        assert result.duration_seconds == 15.0

    def test_unreachable_with_digest_is_rejected(self):
        with pytest.raises(ValueError):
            CheckResult(Protocol.IMAP, IPFamily.V4, False, False, "4a5b", 1.0)

    def test_unreachable_and_valid_is_rejected(self):
        with pytest.raises(ValueError):
            CheckResult(Protocol.IMAP, IPFamily.V4, False, True, "", 1.0)


class TestModel:
    def test_failed_tlsa_record(self):
        record = TLSARecord.failed("_25._tcp.mail.test", 0.4)
        assert (record.resolved, record.digest, record.fetch_seconds) == (False, "", 0.4)

    def test_ip_family_maps_to_socket_family(self):
        assert IPFamily.V4.address_family == socket.AF_INET
        assert IPFamily.V6.address_family == socket.AF_INET6

    def test_report_filters_by_protocol(self):
        smtp = CheckResult.unreachable(Protocol.SMTP, IPFamily.V4, 1.0, "timeout")
        imap = CheckResult.unreachable(Protocol.IMAP, IPFamily.V4, 1.0, "timeout")
        report = ProbeReport(tlsa=TLSARecord.failed("x", 0.1), checks=[smtp, imap])
        assert report.for_protocol(Protocol.IMAP) == [imap]
