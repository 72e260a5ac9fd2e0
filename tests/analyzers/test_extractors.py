"""Tests for structured extraction over real tree-sitter grammars."""

from __future__ import annotations

import textwrap
from typing import Dict

import pytest

from repoctx.analyzers.extractors import StructuredResult, extract_structured, extractor_for
from repoctx.analyzers.language import Language
from repoctx.analyzers.tree_sitter import GrammarRegistry
from repoctx.models import ExtractedSymbol, SymbolKind


@pytest.fixture(scope="module")
def registry() -> GrammarRegistry:
    grammars = GrammarRegistry()
    grammars.initialize()
    return grammars


def _extract(registry: GrammarRegistry, source: str, language: Language) -> StructuredResult:
    data = textwrap.dedent(source).lstrip("\n").encode("utf-8")
    result = extract_structured(registry.parse(data, language), data, language)
    assert result is not None
    return result


def _by_name(result: StructuredResult) -> Dict[str, ExtractedSymbol]:
    return {symbol.name: symbol for symbol in [*result.functions, *result.classes]}


def test_every_language_has_an_extractor() -> None:
    for language in Language:
        assert callable(extractor_for(language))


def test_typescript_symbols_imports_and_exports(registry: GrammarRegistry) -> None:
    result = _extract(
        registry,
        """
        import { readFile } from "fs";
        import type { Config } from "./config";
        const path = require("path");
        export { helper as assist } from "./helpers";
        export * from "./types";

        export interface Options { verbose: boolean }
        export enum Mode { Fast, Slow }
        export class Engine {
          async start(): Promise<void> {}
        }
        export async function run(options: Options): Promise<void> {}
        export const build = (x: number) => x * 2;
        function internal() {}
        """,
        Language.TYPESCRIPT,
    )
    symbols = _by_name(result)

    assert set(result.imports) == {"fs", "./config", "path", "./helpers", "./types"}
    assert {"assist", "* from ./types", "Options", "Mode", "Engine", "run", "build"} <= set(
        result.exports
    )
    assert symbols["Options"].kind is SymbolKind.INTERFACE
    assert symbols["Mode"].kind is SymbolKind.ENUM
    assert symbols["Engine"].kind is SymbolKind.CLASS and symbols["Engine"].is_exported
    assert symbols["start"].kind is SymbolKind.METHOD and symbols["start"].is_async
    assert symbols["run"].is_exported and symbols["run"].is_async
    assert symbols["run"].signature == "async function run(options: Options): Promise<void>"
    assert symbols["build"].is_exported
    assert symbols["build"].signature == "const build = (x: number)"
    assert not symbols["internal"].is_exported
    assert symbols["internal"].line == 14


def test_javascript_commonjs_exports(registry: GrammarRegistry) -> None:
    result = _extract(
        registry,
        """
        const fs = require('fs');
        function load() {}
        module.exports.load = load;
        exports.save = function save() {};
        export default function () {}
        """,
        Language.JAVASCRIPT,
    )

    assert result.imports == ["fs"]
    assert {"load", "save", "default"} <= set(result.exports)


def test_tsx_component(registry: GrammarRegistry) -> None:
    result = _extract(
        registry,
        """
        import React from "react";
        export const Button = () => <button>Click</button>;
        """,
        Language.TSX,
    )

    assert result.imports == ["react"]
    assert _by_name(result)["Button"].is_exported


def test_python_all_controls_exports(registry: GrammarRegistry) -> None:
    result = _extract(
        registry,
        """
        import os.path
        import numpy as np
        from collections import OrderedDict
        from . import sibling
        from .models import Thing

        __all__ = ["Service", "run"]

        class Service:
            def handle(self):
                pass

            async def close(self):
                pass

        @decorator
        def run():
            pass

        def helper():
            pass

        async def _private():
            pass
        """,
        Language.PYTHON,
    )
    symbols = _by_name(result)

    assert result.imports == ["os", "numpy", "collections", ".", ".models"]
    assert result.exports == ["Service", "run"]
    assert symbols["Service"].is_exported
    assert symbols["run"].is_exported
    assert not symbols["helper"].is_exported
    assert symbols["handle"].kind is SymbolKind.METHOD
    assert symbols["close"].is_async and symbols["close"].kind is SymbolKind.METHOD
    assert symbols["_private"].is_async and not symbols["_private"].is_exported
    assert symbols["Service"].signature == "class Service"
    assert symbols["run"].signature == "def run()"


def test_python_exports_default_to_public_top_level_names(registry: GrammarRegistry) -> None:
    result = _extract(
        registry,
        """
        def public():
            def nested():
                pass

        def _hidden():
            pass

        class Widget:
            pass
        """,
        Language.PYTHON,
    )

    assert result.exports == ["public", "Widget"]
    assert not _by_name(result)["nested"].is_exported


def test_go_capitalised_names_are_exported(registry: GrammarRegistry) -> None:
    result = _extract(
        registry,
        """
        package server

        import (
        	"fmt"
        	nethttp "net/http"
        )

        type Server struct{}
        type Handler interface{ Serve() }
        type config struct{}

        func New() *Server { return &Server{} }
        func (s *Server) Start() error { return nil }
        func helper() {}
        """,
        Language.GO,
    )
    symbols = _by_name(result)

    assert result.imports == ["fmt", "net/http"]
    assert set(result.exports) == {"Server", "Handler", "New", "Start"}
    assert symbols["Server"].kind is SymbolKind.STRUCT and symbols["Server"].is_exported
    assert symbols["Handler"].kind is SymbolKind.INTERFACE
    assert not symbols["config"].is_exported
    assert symbols["Start"].kind is SymbolKind.METHOD
    assert not symbols["helper"].is_exported


def test_rust_visibility_and_use_roots(registry: GrammarRegistry) -> None:
    result = _extract(
        registry,
        """
        use std::collections::HashMap;
        use crate::config::Settings;
        use self::inner::Thing;
        use serde::{Deserialize, Serialize};
        extern crate log;
        pub use crate::api::Client;

        pub struct Engine {}
        pub(crate) struct Hidden {}
        pub enum Mode { Fast }
        pub trait Run { fn run(&self); }

        impl Engine {
            pub async fn start(&self) {}
            fn stop(&self) {}
        }

        pub fn build() -> Engine { Engine {} }
        fn internal() {}
        pub mod api;
        """,
        Language.RUST,
    )
    symbols = _by_name(result)

    assert result.imports == ["std", "serde", "log"]
    assert set(result.exports) == {"* from crate::api::Client", "api"}
    assert symbols["Engine"].kind is SymbolKind.STRUCT and symbols["Engine"].is_exported
    assert not symbols["Hidden"].is_exported
    assert symbols["Mode"].kind is SymbolKind.ENUM
    assert symbols["Run"].kind is SymbolKind.TRAIT
    assert symbols["run"].kind is SymbolKind.METHOD
    assert symbols["start"].is_async and symbols["start"].is_exported
    assert symbols["stop"].kind is SymbolKind.METHOD and not symbols["stop"].is_exported
    assert symbols["build"].kind is SymbolKind.FUNCTION and symbols["build"].is_exported
    assert symbols["build"].signature == "pub fn build() -> Engine"
    assert not symbols["internal"].is_exported


def test_java_public_types_and_imports(registry: GrammarRegistry) -> None:
    result = _extract(
        registry,
        """
        package com.example;

        import java.util.List;
        import static org.junit.Assert.assertTrue;
        import com.example.util.*;

        public class Service {
            public Service() {}
            public List<String> names() { return null; }
            private void helper() {}
        }

        interface Internal {}
        """,
        Language.JAVA,
    )
    symbols = _by_name(result)

    assert result.imports == ["java.util.List", "org.junit.Assert.assertTrue", "com.example.util"]
    assert result.exports == ["Service"]
    assert symbols["Service"].kind is SymbolKind.CLASS and symbols["Service"].is_exported
    assert symbols["names"].kind is SymbolKind.METHOD and symbols["names"].is_exported
    assert not symbols["helper"].is_exported
    assert symbols["Internal"].kind is SymbolKind.INTERFACE and not symbols["Internal"].is_exported


@pytest.mark.parametrize(
    ("source", "language"),
    [
        ("function (\n", Language.TYPESCRIPT),
        ("def broken(:\n    pass\n", Language.PYTHON),
        ("pub fn {\n", Language.RUST),
    ],
)
def test_syntax_errors_yield_nothing(
    registry: GrammarRegistry, source: str, language: Language
) -> None:
    data = source.encode("utf-8")
    assert extract_structured(registry.parse(data, language), data, language) is None


def test_arrow_function_signatures_keep_declaration_keyword(registry: GrammarRegistry) -> None:
    result = _extract(
        registry,
        """
        const first = () => 1, second = async (a, b) => a + b;
        let third = function (value) { return value; };
        """,
        Language.JAVASCRIPT,
    )
    symbols = _by_name(result)

    assert symbols["first"].signature == "const first = ()"
    assert symbols["second"].signature == "const second = async (a, b)"
    assert symbols["second"].is_async
    assert symbols["third"].signature == "let third = function (value)"
