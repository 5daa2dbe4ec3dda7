from __future__ import annotations

import pytest
from conftest import FakeAMIs, FakeCatalog, FakeLifecycle, make_instance

from skynode.api.model import Policy
from skynode.constants import Label
from skynode.errors import ResolutionError
from skynode.providers.aws.config import AMIFamily, AWSProvider, NodeTemplate
from skynode.providers.aws.drift import is_ami_drifted
from skynode.providers.aws.translate import instance_to_machine


@pytest.fixture
def lifecycle():
    lc = FakeLifecycle()
    lc.add(make_instance("i-abc", image_id="ami-1"))
    return lc


@pytest.fixture
def machine(lifecycle, large, settings):
    return instance_to_machine(lifecycle.instances["i-abc"], large, settings)


async def _drifted(machine, template, catalog, amis, lifecycle):
    return await is_ami_drifted(
        machine, Policy(name="default"), template, catalog=catalog, amis=amis, instances=lifecycle,
    )


class TestIsAMIDrifted:
    @pytest.mark.asyncio
    async def test_matching_image_is_not_drifted(self, machine, template, catalog, amis, lifecycle):
        assert not await _drifted(machine, template, catalog, amis, lifecycle)

    @pytest.mark.asyncio
    async def test_foreign_image_is_drifted(self, machine, template, catalog, lifecycle):
        amis = FakeAMIs(ami_ids=("ami-2", "ami-3"))
        assert await _drifted(machine, template, catalog, amis, lifecycle)

    @pytest.mark.asyncio
    async def test_launch_template_is_never_drifted(self, machine, catalog, lifecycle):
        template = NodeTemplate(name="lt", provider=AWSProvider(launch_template_name="custom"))
        amis = FakeAMIs(ami_ids=("ami-other",))
        assert not await _drifted(machine, template, catalog, amis, lifecycle)
        assert amis.calls == []

    @pytest.mark.asyncio
    async def test_resolves_amis_for_machine_type_and_family(self, machine, catalog, amis, lifecycle, large):
        template = NodeTemplate(name="br", provider=AWSProvider(ami_family=AMIFamily.BOTTLEROCKET))
        await _drifted(machine, template, catalog, amis, lifecycle)
        assert amis.calls == [(template, [large], AMIFamily.BOTTLEROCKET)]

    @pytest.mark.asyncio
    async def test_unknown_instance_type_is_resolution_error(self, machine, template, amis, lifecycle, small):
        catalog = FakeCatalog([small])
        with pytest.raises(ResolutionError, match="large"):
            await _drifted(machine, template, catalog, amis, lifecycle)

    @pytest.mark.asyncio
    async def test_missing_type_label_is_resolution_error(self, template, catalog, amis, lifecycle, settings):
        machine = instance_to_machine(lifecycle.instances["i-abc"], None, settings)
        assert Label.INSTANCE_TYPE not in machine.labels
        with pytest.raises(ResolutionError):
            await _drifted(machine, template, catalog, amis, lifecycle)
