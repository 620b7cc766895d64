"""
安全标记规则测试
"""
from suilens.graph.models import (
    FlagLevel,
    FlagScope,
    FunctionSummary,
    ModuleNode,
    ObjectNode,
    ObjectOwner,
    TypeNode,
)
from suilens.security import detect_security_flags


def _module(name, types=(), functions=(), placeholder=False):
    return ModuleNode(
        full_name=f"0xa::{name}",
        package="pkg:0xa",
        name=name,
        functions=[FunctionSummary(name=f) for f in functions],
        types_defined=list(types),
        placeholder=placeholder,
    )


def _kinds(flags):
    return sorted(f.kind for f in flags)


def test_module_rules():
    modules = [
        _module("admin", types=["0xa::admin::AdminCap", "0xa::admin::UpgradeCapWrapper"]),
        _module("token", functions=["mint_to", "burn", "pause", "set_fee_rate", "add_to_blacklist"]),
        _module("plain", functions=["swap", "paused_state"]),
    ]
    flags = detect_security_flags(modules, [], [])

    assert _kinds(flags) == [
        "AdminCap",
        "BlacklistFunction",
        "BurnFunction",
        "MintFunction",
        "PauseFunction",
        "SetFeeFunction",
        "UpgradeCap",
    ]
    admin = next(f for f in flags if f.kind == "AdminCap")
    assert admin.level == FlagLevel.HIGH
    assert admin.scope == FlagScope.MODULE
    assert admin.ref_id == "mod:0xa::admin"
    assert admin.details == {"message": "Module defines AdminCap type"}
    assert next(f for f in flags if f.kind == "SetFeeFunction").level == FlagLevel.LOW


def test_type_rules():
    types = [
        TypeNode(fqn="0xa::m::Receipt", module="mod:0xa::m", abilities=("Store", "Drop")),
        TypeNode(fqn="0xa::m::Pool", module="mod:0xa::m", abilities=("Key", "Store"), has_key=True),
    ]
    flags = detect_security_flags([], types, [])

    assert [(f.kind, f.ref_id) for f in flags] == [
        ("StoreWithoutKey", "type:0xa::m::Receipt"),
        ("Droppable", "type:0xa::m::Receipt"),
    ]
    assert all(f.level == FlagLevel.LOW for f in flags)


def test_object_rules():
    objects = [
        ObjectNode("0x1", "0x2::coin::TreasuryCap<0xa::t::T>", ObjectOwner.address_owner("0xalice")),
        ObjectNode("0x2", "0xa::vault::Treasury", ObjectOwner.shared(), shared=True),
        ObjectNode("0x3", "0xa::vault::Treasury", ObjectOwner.object_owner("0x9")),
    ]
    flags = detect_security_flags([], [], objects)

    assert [(f.kind, f.ref_id) for f in flags] == [
        ("SingleOwnerCap", "obj:0x1"),
        ("UnsafeShared", "obj:0x2"),
    ]
    assert flags[0].details == {
        "message": "Critical capability owned by single address",
        "owner": "0xalice",
        "type": "0x2::coin::TreasuryCap<0xa::t::T>",
    }
    assert flags[1].level == FlagLevel.HIGH


def test_placeholders_are_not_flagged():
    modules = [_module("ghost", types=["0xa::ghost::AdminCap"], placeholder=True)]
    objects = [ObjectNode.make_placeholder("0x5")]
    assert detect_security_flags(modules, [], objects) == []


def test_rules_are_independent():
    module = _module("token", types=["0xa::token::AdminCap"], functions=["mint", "burn"])
    assert _kinds(detect_security_flags([module], [], [])) == ["AdminCap", "BurnFunction", "MintFunction"]
