from __future__ import annotations

import json

import pytest
from conftest import FakeStore

from skynode.errors import DeserializationError, NotFoundError
from skynode.providers.aws.config import AMIFamily, AWSProvider, NodeTemplate, deserialize_provider
from skynode.providers.aws.nodetemplate import resolve_node_template


class TestDeserializeProvider:
    @pytest.mark.parametrize("raw", [None, b"", ""])
    def test_empty_yields_defaults(self, raw):
        assert deserialize_provider(raw) == AWSProvider()

    def test_full_payload(self):
        raw = json.dumps({
            "amiFamily": "Bottlerocket",
            "launchTemplate": "my-template",
            "instanceProfile": "node-role",
            "subnetSelector": {"skynode.sh/discovery": "dev"},
            "securityGroupSelector": {"Name": "nodes"},
            "tags": {"team": "ml"},
            "context": "cr-123",
            "metadataOptions": {"httpTokens": "required"},
        }).encode()
        provider = deserialize_provider(raw)
        assert provider.ami_family == AMIFamily.BOTTLEROCKET
        assert provider.launch_template_name == "my-template"
        assert provider.instance_profile == "node-role"
        assert provider.subnet_selector == {"skynode.sh/discovery": "dev"}
        assert provider.tags == {"team": "ml"}
        assert provider.context == "cr-123"
        assert provider.metadata_options["httpTokens"] == "required"

    @pytest.mark.parametrize(
        ("raw", "match"),
        [
            (b"{not json", "invalid provider JSON"),
            (b"[1, 2]", "must be a JSON object"),
            (b'{"amiFamily": "Windows"}', "unknown amiFamily"),
            (b'{"launchTemplate": 3}', "must be a string"),
            (b'{"tags": {"a": 1}}', "mapping of strings"),
            (b'{"metadataOptions": "yes"}', "must be an object"),
            (b'{"userData": "x"}', "unknown provider field"),
        ],
    )
    def test_malformed(self, raw, match):
        with pytest.raises(DeserializationError, match=match):
            deserialize_provider(raw)


class TestNodeTemplate:
    def test_defaults_to_al2(self):
        assert NodeTemplate().ami_family == AMIFamily.AL2

    def test_launch_template_from_provider(self):
        template = NodeTemplate(provider=AWSProvider(launch_template_name="lt"))
        assert template.launch_template_name == "lt"


class TestResolveNodeTemplate:
    @pytest.mark.asyncio
    async def test_reference_wins(self, template):
        store = FakeStore(template)
        resolved = await resolve_node_template(store, b'{"amiFamily": "Ubuntu"}', "default")
        assert resolved is template

    @pytest.mark.asyncio
    async def test_missing_reference_propagates_not_found(self):
        with pytest.raises(NotFoundError) as exc_info:
            await resolve_node_template(FakeStore(), None, "missing")
        assert type(exc_info.value) is NotFoundError

    @pytest.mark.asyncio
    async def test_inline_has_empty_name(self):
        resolved = await resolve_node_template(FakeStore(), b'{"amiFamily": "Ubuntu"}', None)
        assert resolved.name == ""
        assert resolved.ami_family == AMIFamily.UBUNTU

    @pytest.mark.asyncio
    async def test_inline_malformed(self):
        with pytest.raises(DeserializationError):
            await resolve_node_template(FakeStore(), b"nope", None)
