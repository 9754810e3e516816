"""
Step definitions for reconciliation loop integration tests.
"""

from datetime import timedelta

from behave import given, when, then

from ddns_reconciler.models import RecordState, utcnow

DEFAULT_IP = "203.0.113.7"
UNITS = {"minutes": "minutes", "minute": "minutes", "hours": "hours", "hour": "hours"}


@given('a record "{hostname}" pointing to "{ip_address}"')
def step_impl(context, hostname, ip_address):
    """Register a new record through the owner's account."""
    context.manager.records.create_record(context.token, hostname, ip_address)


@given('an active record "{hostname}" last refreshed {amount:d} {unit} ago')
def step_impl(context, hostname, amount, unit):
    """Seed a record that is already live at the provider."""
    record = context.manager.records.create_record(context.token, hostname, DEFAULT_IP)
    record.state = RecordState.ACTIVE
    record.last_refreshed_at = utcnow() - timedelta(**{UNITS[unit]: amount})
    context.manager.store.save_record(record)
    context.provider.records[hostname] = DEFAULT_IP


@given('the provider rejects changes to "{hostname}"')
def step_impl(context, hostname):
    context.provider.fail_upserts.add(hostname)
    context.provider.fail_deletes.add(hostname)


@when('the provider accepts changes to "{hostname}"')
def step_impl(context, hostname):
    context.provider.fail_upserts.discard(hostname)
    context.provider.fail_deletes.discard(hostname)


@when('the owner refreshes "{hostname}" with its current address')
def step_impl(context, hostname):
    context.manager.records.refresh_record(context.token, hostname, DEFAULT_IP)


@when('the owner renames "{hostname}" to "{new_hostname}"')
def step_impl(context, hostname, new_hostname):
    record = context.manager.store.find_by_hostname(hostname)
    context.manager.records.update_record(context.token, record.id, hostname=new_hostname)


@when("a reconciliation cycle runs")
def step_impl(context):
    """Run one reconciliation cycle."""
    context.report = context.manager.reconcile_once()
    assert not context.report.aborted, f"Cycle aborted: {context.report.error}"


@then('the provider should resolve "{hostname}" to "{ip_address}"')
def step_impl(context, hostname, ip_address):
    found = context.provider.records.get(hostname)
    assert found == ip_address, f"IP mismatch: expected {ip_address}, got {found}"


@then('the provider should not have "{hostname}"')
def step_impl(context, hostname):
    assert hostname not in context.provider.records, f"{hostname} is still published"


@then('the record "{hostname}" should be "{state}"')
def step_impl(context, hostname, state):
    record = context.manager.store.find_by_hostname(hostname)
    assert record is not None, f"Record {hostname} not found"
    assert record.state.value == state, f"State mismatch: expected {state}, got {record.state.value}"


@then('the record "{hostname}" should not exist')
def step_impl(context, hostname):
    assert context.manager.store.find_by_hostname(hostname) is None


@then("the cycle should report {expired:d} expired and {removed:d} removed")
def step_impl(context, expired, removed):
    assert context.report.expired == expired, f"Expired: {context.report.expired}"
    assert context.report.removed == removed, f"Removed: {context.report.removed}"


@then("the cycle should report {changes:d} changes")
def step_impl(context, changes):
    total = context.report.total_changes
    assert total == changes, f"Expected {changes} changes, got {total}"
