# tests/test_enforcer.py
import pytest

from tenant_overlay.enforcement.enforcer import authorize, check_feature, check_limit
from tenant_overlay.enforcement.models import DenyReason, FeatureCheck, LimitCheck, Resource, UsageCounters
from tenant_overlay.enforcement.usage import InMemoryUsageCounterSource
from tenant_overlay.tenants.models import TenantStatus


@pytest.fixture
def acme(make_context):
    return make_context("acme", override={"limits": {"maxUsers": 10}})


def test_limit_reached_denies_one_more_user(acme):
    decision = check_limit(acme, "users", 1, UsageCounters(active_users=10))

    assert not decision.allowed
    assert decision.reason == DenyReason.LIMIT_EXCEEDED


def test_usage_up_to_the_limit_is_allowed(acme):
    assert check_limit(acme, "users", 1, UsageCounters(active_users=9)).allowed
    assert check_limit(acme, "users", 0, UsageCounters(active_users=10)).allowed


def test_counted_resources_read_the_other_counters(acme):
    usage = UsageCounters(other={"polls": 50})

    assert not check_limit(acme, Resource.POLLS, 1, usage).allowed
    assert check_limit(acme, Resource.JOB_POSTS, 10, usage).allowed
    assert not check_limit(acme, Resource.JOB_POSTS, 11, usage).allowed


def test_missing_usage_counts_as_zero(acme):
    assert check_limit(acme, "storage", 5368709120).allowed


def test_enabled_feature_is_allowed(acme):
    assert check_feature(acme, "polls").allowed


def test_disabled_feature_is_denied(acme):
    decision = check_feature(acme, "jobBoard")

    assert decision.reason == DenyReason.FEATURE_DISABLED
    assert "jobBoard" in decision.detail


def test_unknown_feature_is_denied(acme):
    assert check_feature(acme, "teleport").reason == DenyReason.FEATURE_DISABLED


def test_feature_enabled_by_override(make_context):
    context = make_context("acme", override={"features": {"jobBoard": {"enabled": True}}})

    assert check_feature(context, "jobBoard").allowed


@pytest.mark.parametrize("status", [TenantStatus.SUSPENDED, TenantStatus.DELETED])
def test_inactive_tenant_is_denied_before_any_other_check(make_context, status):
    context = make_context("initech", status=status)

    assert authorize(context, FeatureCheck(feature="polls")).reason == DenyReason.TENANT_INACTIVE
    assert authorize(context, LimitCheck(resource=Resource.USERS, delta=0)).reason == DenyReason.TENANT_INACTIVE


def test_unknown_resource_is_an_error(acme):
    with pytest.raises(ValueError, match="widgets"):
        check_limit(acme, "widgets", 1)


def test_decisions_are_deterministic(acme):
    usage = UsageCounters(active_users=10)
    capability = LimitCheck(resource=Resource.USERS, delta=1)

    assert authorize(acme, capability, usage) == authorize(acme, capability, usage)


def test_negative_delta_is_rejected():
    with pytest.raises(ValueError):
        LimitCheck(resource=Resource.USERS, delta=-1)


async def test_in_memory_usage_counters():
    source = InMemoryUsageCounterSource()

    await source.set("acme", "users", 4)
    await source.increment("acme", "api_calls", 100)
    await source.increment("acme", Resource.POLLS, 2)
    usage = await source.get_usage("acme")

    assert usage.active_users == 4
    assert usage.api_calls_this_period == 100
    assert usage.other == {"polls": 2}

    usage = await source.reset_period("acme")
    assert usage.api_calls_this_period == 0
    assert usage.active_users == 4
    assert (await source.get_usage("globex")) == UsageCounters()


async def test_usage_counters_reject_negative_values():
    with pytest.raises(ValueError):
        await InMemoryUsageCounterSource().set("acme", "users", -1)
