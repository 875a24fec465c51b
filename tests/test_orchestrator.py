from __future__ import annotations

import pytest

from auth_blocking_kit import backend, events, orchestrator
from auth_blocking_kit.auth_blocking import DuplicateTriggerError
from auth_blocking_kit.backend import BlockingTrigger, Endpoint


def _endpoint(ep_id: str, event_type: str, uri: str | None = None, **flags: bool) -> Endpoint:
    return Endpoint(
        id=ep_id,
        project="test-project",
        uri=uri or f"https://{ep_id}",
        blocking_trigger=BlockingTrigger(event_type=event_type, **flags),
    )


def test_prepare_backend_propagates_merged_options() -> None:
    a = _endpoint("a", events.V2_BEFORE_CREATE_EVENT, id_token=True)
    b = _endpoint("b", events.V2_BEFORE_SIGN_IN_EVENT, refresh_token=True)
    want = backend.of(a, b)

    orchestrator.prepare_backend(want)

    for ep in (a, b):
        assert ep.blocking_trigger.id_token is True
        assert ep.blocking_trigger.refresh_token is True
        assert ep.blocking_trigger.access_token is False


def test_compute_actions_register_update_unregister() -> None:
    want = backend.of(
        _endpoint("kept", events.V2_BEFORE_CREATE_EVENT),
        _endpoint("new", events.V2_BEFORE_SIGN_IN_EVENT),
    )
    have = backend.of(
        _endpoint("kept", events.V2_BEFORE_CREATE_EVENT),
        _endpoint("gone", events.V2_BEFORE_SIGN_IN_EVENT),
    )

    actions = [(action, ep.id) for action, ep in orchestrator.compute_actions(want, have)]

    assert actions == [
        (orchestrator.ACTION_UPDATE, "kept"),
        (orchestrator.ACTION_REGISTER, "new"),
        (orchestrator.ACTION_UNREGISTER, "gone"),
    ]


def test_plan_all_lists_options_and_actions() -> None:
    want = backend.of(_endpoint("a", events.V2_BEFORE_CREATE_EVENT, access_token=True))

    report = orchestrator.plan_all(want)

    assert "- accessToken: True" in report
    assert "- register: a [test-project/us-central1] beforeCreate uri=https://a" in report


def test_plan_all_raises_on_duplicate_trigger() -> None:
    want = backend.of(
        _endpoint("a", events.V2_BEFORE_CREATE_EVENT),
        _endpoint("b", events.V2_BEFORE_CREATE_EVENT),
    )

    with pytest.raises(DuplicateTriggerError):
        orchestrator.plan_all(want)


def test_apply_all_replaces_trigger_and_skips_stale_unregister(fake_ip) -> None:
    fake_ip.configs["test-project"] = {
        "triggers": {"beforeCreate": {"functionUri": "https://old"}},
    }
    have = backend.of(_endpoint("old", events.V2_BEFORE_CREATE_EVENT, uri="https://old"))
    want = backend.of(
        _endpoint("new", events.V2_BEFORE_CREATE_EVENT, uri="https://new", id_token=True)
    )

    summary, has_failures = orchestrator.apply_all(want, have, client=fake_ip)

    assert not has_failures
    assert "- register new" in summary
    assert "- unregister old" in summary
    # old 의 해제는 URI 가 이미 new 로 바뀌어 있으므로 아무것도 쓰지 않는다.
    assert len(fake_ip.set_calls) == 1
    config = fake_ip.configs["test-project"]
    assert config["triggers"]["beforeCreate"] == {"functionUri": "https://new"}
    assert config["forwardInboundCredentials"]["idToken"] == "true"


def test_apply_all_marks_failed_endpoint(monkeypatch: pytest.MonkeyPatch, fake_ip) -> None:
    want = backend.of(
        _endpoint("a", events.V2_BEFORE_CREATE_EVENT),
        _endpoint("b", events.V2_BEFORE_SIGN_IN_EVENT),
    )
    real_set = fake_ip.set_blocking_functions_config

    def flaky_set(project_id, config):  # noqa: ANN001, ANN202
        if "beforeSignIn" in config.get("triggers", {}):
            raise RuntimeError("boom")
        return real_set(project_id, config)

    monkeypatch.setattr(fake_ip, "set_blocking_functions_config", flaky_set)

    summary, has_failures = orchestrator.apply_all(want, client=fake_ip)

    assert has_failures
    assert "## Failed\n- register b" in summary
    assert "## Executed\n- register a" in summary


def test_check_all_reports_slots(fake_ip) -> None:
    fake_ip.configs["p"] = {
        "triggers": {"beforeSignIn": {"functionUri": "https://b"}},
        "forwardInboundCredentials": {"idToken": "false", "accessToken": "true", "refreshToken": "false"},
    }

    report, has_issues = orchestrator.check_all("p", client=fake_ip)

    assert not has_issues
    assert "- beforeCreate: (none)" in report
    assert "- beforeSignIn: https://b" in report
    assert "- accessToken: true" in report


def test_check_all_fetch_failure_is_an_issue() -> None:
    class _Broken:
        def get_blocking_functions_config(self, project_id):  # noqa: ANN001, ANN202
            raise RuntimeError("unreachable")

    report, has_issues = orchestrator.check_all("p", client=_Broken())

    assert has_issues
    assert "unreachable" in report


def test_compute_actions_family_change_unregisters_old_slot() -> None:
    have = backend.of(_endpoint("auth", events.V2_BEFORE_CREATE_EVENT, uri="https://auth"))
    want = backend.of(_endpoint("auth", events.V2_BEFORE_SIGN_IN_EVENT, uri="https://auth"))

    actions = orchestrator.compute_actions(want, have)

    assert [(action, ep.blocking_trigger.event_type) for action, ep in actions] == [
        (orchestrator.ACTION_REGISTER, events.V2_BEFORE_SIGN_IN_EVENT),
        (orchestrator.ACTION_UNREGISTER, events.V2_BEFORE_CREATE_EVENT),
    ]


def test_apply_all_family_change_moves_trigger(fake_ip) -> None:
    fake_ip.configs["test-project"] = {
        "triggers": {"beforeCreate": {"functionUri": "https://auth"}},
    }
    have = backend.of(_endpoint("auth", events.V2_BEFORE_CREATE_EVENT, uri="https://auth"))
    want = backend.of(_endpoint("auth", events.V2_BEFORE_SIGN_IN_EVENT, uri="https://auth"))

    summary, has_failures = orchestrator.apply_all(want, have, client=fake_ip)

    assert not has_failures
    triggers = fake_ip.configs["test-project"]["triggers"]
    assert triggers["beforeCreate"] == {}
    assert triggers["beforeSignIn"] == {"functionUri": "https://auth"}


def test_apply_all_endpoint_without_uri_is_failed_and_not_written(fake_ip) -> None:
    live = {
        "triggers": {"beforeCreate": {"functionUri": "https://live"}},
        "forwardInboundCredentials": {"idToken": "true", "accessToken": "true", "refreshToken": "true"},
    }
    fake_ip.configs["test-project"] = dict(live)
    ep = _endpoint("a", events.V2_BEFORE_CREATE_EVENT)
    ep.uri = None

    summary, has_failures = orchestrator.apply_all(backend.of(ep), client=fake_ip)

    assert has_failures
    assert "## Failed\n- register a" in summary
    assert fake_ip.set_calls == []
    assert fake_ip.configs["test-project"] == live
