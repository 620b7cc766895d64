"""
类型表达式工具测试
"""
import json

from suilens.sui.type_refs import (
    extract_fully_qualified_types,
    extract_module_name,
    extract_package_address,
    module_fqn_of,
    stringify_type,
)

from conftest import struct_ref


class TestExtractFullyQualifiedTypes:
    def test_primitive_has_no_references(self):
        assert extract_fully_qualified_types("U64") == []
        assert extract_fully_qualified_types(None) == []

    def test_struct_with_type_arguments(self):
        expr = struct_ref("0x2", "coin", "Coin", [struct_ref("0x2", "sui", "SUI")])
        assert extract_fully_qualified_types(expr) == ["0x2::coin::Coin", "0x2::sui::SUI"]

    def test_wrappers_are_unwrapped(self):
        expr = {"MutableReference": {"Vector": struct_ref("0xb", "pool", "Pool")}}
        assert extract_fully_qualified_types(expr) == ["0xb::pool::Pool"]

    def test_type_parameter_is_ignored(self):
        expr = struct_ref("0x2", "balance", "Balance", [{"TypeParameter": 0}])
        assert extract_fully_qualified_types(expr) == ["0x2::balance::Balance"]

    def test_string_generic_is_split(self):
        expr = "0x2::table::Table<0x1::string::String, 0x2::coin::Coin<0x2::sui::SUI>>"
        assert extract_fully_qualified_types(expr) == [
            "0x2::table::Table",
            "0x1::string::String",
            "0x2::coin::Coin",
            "0x2::sui::SUI",
        ]

    def test_duplicates_are_removed(self):
        coin = struct_ref("0x2", "coin", "Coin")
        assert extract_fully_qualified_types([coin, {"Reference": coin}]) == ["0x2::coin::Coin"]

    def test_deep_nesting(self):
        expr = struct_ref("0xc", "m", "Leaf")
        for _ in range(2000):
            expr = {"Vector": expr}
        assert extract_fully_qualified_types(expr) == ["0xc::m::Leaf"]


def test_address_and_module_helpers():
    assert extract_package_address("0x2::coin::Coin") == "0x2"
    assert extract_module_name("0x2::coin::Coin") == "coin"
    assert module_fqn_of("0x2::coin::Coin") == "0x2::coin"
    assert extract_package_address("coin::Coin") is None
    assert module_fqn_of("not a type") is None


def test_stringify_type():
    assert stringify_type("Bool") == "Bool"
    expr = {"Vector": "U8"}
    assert json.loads(stringify_type(expr)) == expr
    assert " " not in stringify_type(expr)
