"""
Step definitions for BIND provider integration tests.
"""

import time

import dns.resolver
from behave import given, when, then

from ddns_reconciler.providers.bind_provider import BINDProvider


def _resolver(context):
    resolver = dns.resolver.Resolver(configure=False)
    resolver.nameservers = [context.test_nameserver]
    resolver.port = context.test_port
    return resolver


@given("I have BIND provider configuration")
def step_impl(context):
    """Set up BIND provider configuration."""
    context.provider_config = dict(context.bind_config)


@given("I initialize the BIND provider")
@when("I initialize the BIND provider")
def step_impl(context):
    """Initialize the BIND provider."""
    context.bind_provider = BINDProvider(context.provider_config)


@then("the provider should be configured correctly")
def step_impl(context):
    """Verify that the provider is configured correctly."""
    assert context.bind_provider.nameserver == context.provider_config["nameserver"]
    assert context.bind_provider.port == context.provider_config["port"]
    assert context.bind_provider.zone == context.test_zone


@then("the TSIG key should be loaded if available")
def step_impl(context):
    """Verify that the TSIG key is loaded if available."""
    key_file = context.base_dir / "bind" / "update-key.conf"
    if key_file.exists():
        assert context.bind_provider.keyring is not None, "TSIG key should be loaded"


@when('I upsert "{hostname}" pointing to "{ip_address}"')
def step_impl(context, hostname, ip_address):
    context.bind_provider.upsert_record(hostname, ip_address)
    # Wait for the update to be applied
    time.sleep(1)


@when('I delete "{hostname}"')
def step_impl(context, hostname):
    context.bind_provider.delete_record(hostname)
    time.sleep(1)


@then('"{hostname}" should resolve to "{ip_address}"')
def step_impl(context, hostname, ip_address):
    answers = _resolver(context).resolve(context.bind_provider.fqdn(hostname), "A")
    ip_found = [str(answer) for answer in answers]
    assert ip_found == [ip_address], f"IP mismatch: expected {ip_address}, got {ip_found}"


@then('"{hostname}" should not be resolvable')
def step_impl(context, hostname):
    try:
        _resolver(context).resolve(context.bind_provider.fqdn(hostname), "A")
    except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
        return
    assert False, f"Deleted record {hostname} is still resolvable"
