"""
Tests for the EC2 instance inventory reader.
"""

import asyncio
from datetime import datetime, timezone

import pytest
from botocore.exceptions import ClientError

from runner_pool.common.constants import ScopeType
from runner_pool.common.errors import InventoryFetchError
from runner_pool.common.schemas import RunnerScope
from runner_pool.integrations.ec2 import InstanceInventoryReader, list_ec2_runners


LAUNCHED = datetime(2024, 5, 1, 11, 50, tzinfo=timezone.utc)


class FakePaginator:
    def __init__(self, pages, error=None):
        self.pages = pages
        self.error = error
        self.kwargs = None

    def paginate(self, **kwargs):
        self.kwargs = kwargs
        if self.error:
            raise self.error
        return iter(self.pages)


class FakeEC2:
    def __init__(self, pages=(), error=None):
        self.paginator = FakePaginator(list(pages), error)

    def get_paginator(self, name):
        assert name == "describe_instances"
        return self.paginator


def ec2_instance(instance_id, owner="my-org", runner_type="Org", launch_time=LAUNCHED):
    return {
        "InstanceId": instance_id,
        "LaunchTime": launch_time,
        "State": {"Name": "running"},
        "Tags": [
            {"Key": "ghr:Application", "Value": "github-action-runner"},
            {"Key": "ghr:Type", "Value": runner_type},
            {"Key": "ghr:Owner", "Value": owner},
        ],
    }


SCOPE = RunnerScope(scope_type=ScopeType.ORGANIZATION, owner="my-org", environment="prod")


def test_lists_instances_across_pages():
    ec2 = FakeEC2(pages=[
        {"Reservations": [{"Instances": [ec2_instance("i-1"), ec2_instance("i-2")]}]},
        {"Reservations": [{"Instances": [ec2_instance("i-3")]}]},
    ])

    instances = list_ec2_runners(ec2, SCOPE)

    assert [i.instance_id for i in instances] == ["i-1", "i-2", "i-3"]
    assert instances[0].launch_time == LAUNCHED
    assert instances[0].scope_type == "Org"
    assert instances[0].owner == "my-org"


def test_filters_by_scope_and_environment():
    ec2 = FakeEC2(pages=[{"Reservations": []}])

    list_ec2_runners(ec2, SCOPE)

    filters = {f["Name"]: f["Values"] for f in ec2.paginator.kwargs["Filters"]}
    assert filters == {
        "instance-state-name": ["running"],
        "tag:ghr:Application": ["github-action-runner"],
        "tag:ghr:Type": ["Org"],
        "tag:ghr:Owner": ["my-org"],
        "tag:ghr:environment": ["prod"],
    }


def test_environment_filter_optional():
    ec2 = FakeEC2(pages=[{"Reservations": []}])
    scope = RunnerScope(scope_type=ScopeType.REPOSITORY, owner="my-org/my-repo")

    list_ec2_runners(ec2, scope)

    names = [f["Name"] for f in ec2.paginator.kwargs["Filters"]]
    assert "tag:ghr:environment" not in names
    assert {"Name": "tag:ghr:Type", "Values": ["Repo"]} in ec2.paginator.kwargs["Filters"]


def test_empty_pool_is_not_an_error():
    assert list_ec2_runners(FakeEC2(pages=[{}]), SCOPE) == []


def test_naive_launch_time_becomes_utc():
    naive = datetime(2024, 5, 1, 11, 50)
    ec2 = FakeEC2(pages=[{"Reservations": [{"Instances": [ec2_instance("i-1", launch_time=naive)]}]}])

    instances = list_ec2_runners(ec2, SCOPE)

    assert instances[0].launch_time.tzinfo is not None


def test_instance_without_tags_falls_back_to_scope():
    item = ec2_instance("i-1")
    del item["Tags"]
    ec2 = FakeEC2(pages=[{"Reservations": [{"Instances": [item]}]}])

    instances = list_ec2_runners(ec2, SCOPE)

    assert instances[0].owner == "my-org"
    assert instances[0].scope_type == "Org"


def test_client_error_becomes_inventory_error():
    error = ClientError({"Error": {"Code": "RequestLimitExceeded", "Message": "Rate exceeded"}}, "DescribeInstances")
    ec2 = FakeEC2(error=error)

    with pytest.raises(InventoryFetchError) as exc_info:
        list_ec2_runners(ec2, SCOPE)
    assert exc_info.value.source == "ec2"
    assert "RequestLimitExceeded" in str(exc_info.value)


def test_async_reader_uses_injected_client():
    ec2 = FakeEC2(pages=[{"Reservations": [{"Instances": [ec2_instance("i-1")]}]}])
    reader = InstanceInventoryReader(ec2_client=ec2)

    instances = asyncio.run(reader.list_instances(SCOPE))

    assert [i.instance_id for i in instances] == ["i-1"]
