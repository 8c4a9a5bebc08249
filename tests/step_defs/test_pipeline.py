"""
Step definitions for the instance pipeline feature.

These tests verify the behaviors for InstancePipeline:
- behavior-pipeline-phase-order
- behavior-pipeline-per-inheritance-own-extensions
- behavior-pipeline-redirect-interrupts
- behavior-pipeline-context-write-once
- behavior-pipeline-wraps-failures
"""

from typing import Any, Dict, List

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

from soba.kernel.errors import SobaError
from soba.kernel.schema import ClassIdentity, Extension, Redirect

scenarios("../features/pipeline.feature")

REDIRECT_VALUE = {"redirected": True}


def split_names(text: str) -> List[str]:
    return [part.strip() for part in text.split(",") if part.strip()]


def payload(class_id: str, parents: str = "", *extensions: Extension) -> Dict[str, Any]:
    identity = ClassIdentity.parse(class_id)
    inherits = {}
    for parent in split_names(parents):
        parent_id = ClassIdentity.parse(parent)
        inherits[parent_id.name] = parent_id.version
    return {
        "name": identity.name,
        "version": identity.version,
        "inherits": inherits,
        "extensions": {ext.name: ext for ext in extensions},
    }


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def test_context():
    return {
        "runtime": None,
        "result": None,
        "error": None,
    }


# =============================================================================
# Given Steps
# =============================================================================


@given("an empty runtime")
def empty_runtime(test_context, bare_runtime):
    test_context["runtime"] = bare_runtime


@given(parsers.re(r'class "(?P<class_id>[^"]+)" with recording extension "(?P<label>[^"]+)" is defined'))
def class_with_recorder(test_context, recording_extension, class_id, label):
    test_context["runtime"].define(payload(class_id, "", recording_extension(label)))


@given(
    parsers.re(
        r'class "(?P<class_id>[^"]+)" inheriting "(?P<parents>[^"]+)" '
        r'with recording extension "(?P<label>[^"]+)" is defined'
    )
)
def class_with_parents_and_recorder(test_context, recording_extension, class_id, parents, label):
    test_context["runtime"].define(payload(class_id, parents, recording_extension(label)))


@given(
    parsers.re(
        r'class "(?P<class_id>[^"]+)" inheriting "(?P<parents>[^"]+)" '
        r'with redirecting extension "(?P<label>[^"]+)" is defined'
    )
)
def class_with_redirect(test_context, recording_extension, call_log, class_id, parents, label):
    def redirect(ctx):
        call_log.append(f"{label}.pre")
        return Redirect(REDIRECT_VALUE)

    ext = recording_extension(label, pre_initialize=redirect)
    test_context["runtime"].define(payload(class_id, parents, ext))


@given(parsers.re(r'class "(?P<class_id>[^"]+)" with a pre_initialize returning a plain value is defined'))
def class_with_plain_return(test_context, class_id):
    ext = Extension(name="plain", pre_initialize=lambda ctx: "not a redirect")
    test_context["runtime"].define(payload(class_id, "", ext))


@given(parsers.re(r'class "(?P<class_id>[^"]+)" with an extension sharing key "(?P<key>[^"]+)" is defined'))
def class_sharing_key(test_context, class_id, key):
    ext = Extension(name=f"share_{class_id.split(':')[0]}", shared_modifiers=lambda ctx: {key: "first"})
    test_context["runtime"].define(payload(class_id, "", ext))


@given(
    parsers.re(
        r'class "(?P<class_id>[^"]+)" inheriting "(?P<parents>[^"]+)" '
        r'with a per-inheritance extension sharing key "(?P<key>[^"]+)" is defined'
    )
)
def class_sharing_key_per_inheritance(test_context, class_id, parents, key):
    ext = Extension(name="share_again", per_inheritance=lambda rep, ctx: {key: "second"})
    test_context["runtime"].define(payload(class_id, parents, ext))


@given(
    parsers.re(
        r'class "(?P<class_id>[^"]+)" contributing "(?P<key>[^"]+)" '
        r"and reading it on completion is defined"
    )
)
def class_contributing_and_reading(test_context, class_id, key):
    def finish(ctx):
        setattr(ctx["self"], key, ctx.require(key))
        ctx["self"].contributed_by = ctx.contributor(key)

    ext = Extension(
        name="greeting",
        shared_modifiers=lambda ctx: {key: "hello"},
        complete=finish,
    )
    test_context["runtime"].define(payload(class_id, "", ext))


@given(parsers.re(r'class "(?P<class_id>[^"]+)" requiring key "(?P<key>[^"]+)" on completion is defined'))
def class_requiring_key(test_context, class_id, key):
    ext = Extension(name="needy", complete=lambda ctx: ctx.require(key))
    test_context["runtime"].define(payload(class_id, "", ext))


@given(parsers.re(r'class "(?P<class_id>[^"]+)" whose complete callback raises "(?P<message>[^"]+)" is defined'))
def class_raising(test_context, class_id, message):
    def explode(ctx):
        raise RuntimeError(message)

    test_context["runtime"].define(payload(class_id, "", Extension(name="explode", complete=explode)))


@given(parsers.re(r'class "(?P<class_id>[^"]+)" copying initial values onto the instance is defined'))
def class_copying_initial_values(test_context, class_id):
    def copy_values(represented, ctx):
        for key, value in ctx["initial_values"].items():
            setattr(ctx["self"], key, value)

    test_context["runtime"].define(payload(class_id, "", Extension(name="fields", per_inheritance=copy_values)))


# =============================================================================
# When Steps
# =============================================================================


@when(parsers.re(r'I instantiate "(?P<class_id>[^"]+)"'))
def instantiate(test_context, class_id):
    test_context["result"] = test_context["runtime"].instantiate(class_id)


@when(parsers.re(r'I instantiate "(?P<class_id>[^"]+)" with x (?P<x>\d+) and y (?P<y>\d+)'))
def instantiate_with_values(test_context, class_id, x, y):
    test_context["result"] = test_context["runtime"].instantiate(class_id, {"x": int(x), "y": int(y)})


@when(parsers.re(r'I try to instantiate "(?P<class_id>[^"]+)"'))
def try_instantiate(test_context, class_id):
    try:
        test_context["result"] = test_context["runtime"].instantiate(class_id)
    except SobaError as e:
        test_context["error"] = e


# =============================================================================
# Then Steps
# =============================================================================


@then(parsers.re(r'the calls are "(?P<calls>[^"]+)"'))
def check_calls(call_log, calls):
    assert call_log == split_names(calls)


@then(parsers.re(r'the per-inheritance calls are "(?P<calls>[^"]+)"'))
def check_per_inheritance_calls(call_log, calls):
    per_calls = [entry for entry in call_log if ".per@" in entry]
    assert per_calls == split_names(calls)


@then("the result is the redirect value")
def check_redirect(test_context):
    assert test_context["result"] is REDIRECT_VALUE


@then(parsers.parse("the error is {kind}"))
def check_error_kind(test_context, kind: str):
    error = test_context["error"]
    assert error is not None, "Expected an error, none was raised"
    names = [cls.__name__ for cls in type(error).__mro__]
    assert kind in names, f"Expected {kind}, got {type(error).__name__}: {error}"


@then(parsers.parse("the error cause is {kind}"))
def check_error_cause(test_context, kind: str):
    cause = test_context["error"].__cause__
    assert cause is not None and type(cause).__name__ == kind


@then(parsers.parse('the error mentions "{text}"'))
def check_error_message(test_context, text: str):
    assert text in str(test_context["error"])


@then(parsers.re(r'the instance attribute "(?P<name>[^"]+)" is "(?P<value>[^"]*)"'))
def check_string_attribute(test_context, name, value):
    assert getattr(test_context["result"], name) == value


@then(parsers.re(r'the instance attribute "(?P<name>[^"]+)" is (?P<value>\d+)'))
def check_int_attribute(test_context, name, value):
    assert getattr(test_context["result"], name) == int(value)


@then(parsers.re(r'the instance belongs to "(?P<class_id>[^"]+)"'))
def check_instance_class(test_context, class_id):
    instance = test_context["result"]
    assert instance.identity.key == class_id
    assert instance.description is test_context["runtime"].resolve(class_id)
