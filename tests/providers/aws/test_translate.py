from __future__ import annotations

from decimal import Decimal

import pytest
from conftest import LAUNCH_TIME, make_instance

from skynode.config import NodeNameConvention, Settings
from skynode.constants import CapacityType, Label
from skynode.errors import InvalidProviderIDError, NotFoundError
from skynode.providers.aws.translate import (
    capacity_type,
    format_provider_id,
    instance_to_machine,
    machine_name,
    parse_instance_id,
)


class TestProviderID:
    def test_format(self):
        assert format_provider_id("aws", "us-east-1a", "i-abc") == "aws:///us-east-1a/i-abc"

    @pytest.mark.parametrize(
        ("zone", "instance_id"),
        [("us-east-1a", "i-0123456789abcdef0"), ("eu-west-3c", "i-1"), ("local", "node_7")],
    )
    def test_round_trip(self, zone, instance_id):
        assert parse_instance_id(format_provider_id("aws", zone, instance_id)) == instance_id

    @pytest.mark.parametrize(
        "provider_id",
        ["", "i-abc", "aws://us-east-1a/i-abc", "aws:///us-east-1a", "aws:///us-east-1a/i-abc/extra"],
    )
    def test_malformed_is_not_found(self, provider_id):
        with pytest.raises(InvalidProviderIDError) as exc_info:
            parse_instance_id(provider_id)
        assert isinstance(exc_info.value, NotFoundError)
        assert "parsing instance id" in str(exc_info.value)


class TestNaming:
    def test_capacity_type(self):
        assert capacity_type(make_instance(lifecycle="spot")) == CapacityType.SPOT
        assert capacity_type(make_instance(lifecycle=None)) == CapacityType.ON_DEMAND
        assert capacity_type(make_instance(lifecycle="scheduled")) == CapacityType.ON_DEMAND

    def test_ip_name_lowercases_dns(self):
        name = machine_name(make_instance(), NodeNameConvention.IP_NAME)
        assert name == "ip-10-0-0-1.ec2.internal"

    def test_resource_name_uses_instance_id(self):
        name = machine_name(make_instance("i-42"), NodeNameConvention.RESOURCE_NAME)
        assert name == "i-42"


class TestInstanceToMachine:
    def test_scenario(self, large):
        instance = make_instance(
            "i-abc",
            zone="us-east-1a",
            image_id="ami-1",
            lifecycle="spot",
            policy="X",
            tags={Label.MANAGED_BY: "Y"},
        )
        machine = instance_to_machine(instance, large, Settings(provider_id_scheme="scheme"))

        assert machine.labels[Label.POLICY] == "X"
        assert machine.labels[Label.MANAGED_BY] == "Y"
        assert machine.labels[Label.ZONE] == "us-east-1a"
        assert machine.labels[Label.CAPACITY_TYPE] == "spot"
        assert machine.labels[Label.AMI_ID] == "ami-1"
        assert dict(machine.capacity) == {"cpu": Decimal(4), "memory": Decimal(16 * 1024**3)}
        assert "pods" not in machine.allocatable
        assert machine.provider_id == "scheme:///us-east-1a/i-abc"

    def test_single_valued_requirements_become_labels(self, large):
        machine = instance_to_machine(make_instance(), large, Settings())
        assert machine.labels[Label.INSTANCE_TYPE] == "large"
        assert machine.labels[Label.ARCH] == "amd64"

    def test_zone_label_comes_from_placement(self, large):
        # large offers two zones, so the zone label is the instance's own
        machine = instance_to_machine(make_instance(zone="us-east-1b"), large, Settings())
        assert machine.labels[Label.ZONE] == "us-east-1b"

    def test_missing_tags_are_omitted(self, large):
        machine = instance_to_machine(make_instance(policy=None), large, Settings())
        assert Label.POLICY not in machine.labels
        assert Label.MANAGED_BY not in machine.labels

    def test_unresolved_type_keeps_identity_fields(self):
        machine = instance_to_machine(make_instance("i-abc"), None, Settings())
        assert machine.capacity == {}
        assert machine.allocatable == {}
        assert Label.INSTANCE_TYPE not in machine.labels
        assert machine.labels[Label.ZONE] == "us-east-1a"
        assert machine.provider_id == "aws:///us-east-1a/i-abc"
        assert machine.created_at == LAUNCH_TIME

    def test_no_zero_quantities(self, large):
        machine = instance_to_machine(make_instance(), large, Settings())
        assert all(q > 0 for q in machine.capacity.values())
        assert all(q > 0 for q in machine.allocatable.values())

    def test_deterministic(self, large, settings):
        instance = make_instance(lifecycle="spot", tags={Label.MANAGED_BY: "test-cluster"})
        first = instance_to_machine(instance, large, settings)
        second = instance_to_machine(instance, large, settings)
        assert first == second
        assert list(first.labels.items()) == list(second.labels.items())

    def test_naming_convention_applied(self, large):
        settings = Settings(node_name_convention=NodeNameConvention.RESOURCE_NAME)
        machine = instance_to_machine(make_instance("i-abc"), large, settings)
        assert machine.name == "i-abc"
