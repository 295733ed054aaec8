import json
from datetime import datetime, timezone

from aiobotocore.session import get_session
from aiomoto import mock_aws

from query_pattern_doctor.domain import AnalysisReport, CacheStats, Finding, QueryRecord, Severity
from query_pattern_doctor.output import ReportOutput
from query_pattern_doctor.output.sqs import SqsReportOutput

TIMESTAMP = datetime(2026, 1, 14, 12, 0, 0, tzinfo=timezone.utc)


def _report() -> AnalysisReport:
    findings = (
        Finding(
            kind="unsafe_limit_collection_join",
            title="Unsafe Limit: row limit across collection join on table customers",
            description="d",
            severity=Severity.CRITICAL,
            evidence_queries=(QueryRecord(sql="SELECT 1", execution_time_ms=4.5, timestamp=TIMESTAMP),),
            context={"table": "customers"},
        ),
        Finding(kind="slow_statement", title="Slow", description="d", severity=Severity.INFO),
    )
    return AnalysisReport(
        findings=findings,
        record_count=2,
        cache_stats=CacheStats(hits=3, misses=1, hit_rate=75.0, entries=1),
        timestamp=TIMESTAMP,
    )


def test_sqs_output_implements_protocol():
    output = SqsReportOutput(queue_url="https://sqs.us-east-1.amazonaws.com/123456789/test")
    assert isinstance(output, ReportOutput)


def test_sqs_output_name_property():
    output = SqsReportOutput(queue_url="https://sqs.us-east-1.amazonaws.com/123456789/test")
    assert output.name == "sqs"


def test_serialize_without_queue():
    output = SqsReportOutput(queue_url="https://sqs.us-east-1.amazonaws.com/123456789/test")

    body = json.loads(output.serialize(_report()))

    assert body["severity"] == 3
    assert body["record_count"] == 2
    assert body["timestamp"] == "2026-01-14T12:00:00+00:00"
    assert body["cache_stats"]["hit_rate"] == 75.0


@mock_aws
async def test_sqs_output_send_to_queue():
    session = get_session()
    async with session.create_client("sqs", region_name="us-east-1") as client:
        response = await client.create_queue(QueueName="test-queue")
        queue_url = response["QueueUrl"]

        output = SqsReportOutput(queue_url=queue_url, region="us-east-1")
        await output.send(_report())

        messages = await client.receive_message(
            QueueUrl=queue_url, MessageAttributeNames=["All"]
        )
        assert len(messages["Messages"]) == 1

        message = messages["Messages"][0]
        assert message["MessageAttributes"]["severity"]["StringValue"] == "CRITICAL"

        body = json.loads(message["Body"])
        assert len(body["findings"]) == 2
        first = body["findings"][0]
        assert first["kind"] == "unsafe_limit_collection_join"
        assert first["context"] == {"table": "customers"}
        assert first["evidence_queries"][0]["sql"] == "SELECT 1"
        assert first["evidence_queries"][0]["timestamp"] == "2026-01-14T12:00:00+00:00"


@mock_aws
async def test_sqs_output_severity_serialized_as_int():
    session = get_session()
    async with session.create_client("sqs", region_name="us-east-1") as client:
        response = await client.create_queue(QueueName="test-queue")
        queue_url = response["QueueUrl"]

        await SqsReportOutput(queue_url=queue_url, region="us-east-1").send(_report())

        messages = await client.receive_message(QueueUrl=queue_url)
        body = json.loads(messages["Messages"][0]["Body"])

        assert body["severity"] == 3
        assert body["findings"][0]["severity"] == 3
        assert body["findings"][1]["severity"] == 1
