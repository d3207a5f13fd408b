"""SDL出力のユニットテスト。"""

import pytest
from schema_factories import enum_type, field, manga_snapshot, object_type, snapshot

from schemawatch.models.errors import SchemaRenderError
from schemawatch.models.schema import EnumValue, FieldDef, InputValue, NamedType, TypeRef
from schemawatch.renderers.sdl import summarize, to_sdl


class TestToSDL:
    def test_header(self) -> None:
        sdl = to_sdl(manga_snapshot())
        assert sdl.startswith("# GraphQL Schema\n")
        assert "# Fetched from: http://localhost:4567\n" in sdl
        assert "# Server: v1.0.0 (build: Stable, revision: r1)\n" in sdl
        assert "# Date: 2026-01-01T12:00:00+00:00\n" in sdl

    def test_object_with_interfaces_and_arguments(self) -> None:
        sdl = to_sdl(manga_snapshot())
        assert (
            "type Query {\n"
            "  manga(id: Int!): Manga\n"
            "  mangas(first: Int, filter: MangaFilterInput): [Manga!]!\n"
            "}\n"
        ) in sdl
        assert "type Manga implements Node {\n  id: Int!\n  title: String!\n" in sdl

    def test_interface_enum_input_scalar_union(self) -> None:
        sdl = to_sdl(manga_snapshot())
        assert "interface Node {\n  id: Int!\n}\n" in sdl
        assert "enum ReadingStatus {\n  READING\n  COMPLETED\n}\n" in sdl
        assert "input MangaFilterInput {\n  title: String\n  inLibrary: Boolean\n}\n" in sdl
        assert "scalar String\n" in sdl
        assert "union SearchResult = Manga | Chapter\n" in sdl

    def test_internal_types_are_omitted(self) -> None:
        assert "__Schema" not in to_sdl(manga_snapshot())

    def test_schema_block_is_last(self) -> None:
        sdl = to_sdl(manga_snapshot())
        assert sdl.endswith("schema {\n  query: Query\n  mutation: Mutation\n}\n")

    def test_types_in_stored_order(self) -> None:
        sdl = to_sdl(manga_snapshot())
        assert sdl.index("type Query") < sdl.index("type Mutation") < sdl.index("type Manga") < sdl.index("scalar Int")

    def test_deprecation_and_descriptions(self) -> None:
        status = NamedType(
            kind="ENUM",
            name="ReadingStatus",
            description="Reading state",
            enum_values=[EnumValue(name="DROPPED", is_deprecated=True, deprecation_reason="merged")],
        )
        manga = object_type("Manga", [field("url", "String", deprecated=True, reason="use realUrl")])
        sdl = to_sdl(snapshot(status, manga))
        assert '"""Reading state"""\nenum ReadingStatus {\n  DROPPED @deprecated(reason: "merged")\n}' in sdl
        assert '  url: String @deprecated(reason: "use realUrl")\n' in sdl

    def test_quotes_are_escaped(self) -> None:
        manga = NamedType(
            kind="OBJECT",
            name="Manga",
            description='Use """realUrl""" instead',
            fields=[field("url", "String", deprecated=True, reason='use "realUrl" or C:\\path')],
        )
        sdl = to_sdl(snapshot(manga, query=None))
        assert '"""Use \\"""realUrl\\""" instead"""\ntype Manga {' in sdl
        assert '  url: String @deprecated(reason: "use \\"realUrl\\" or C:\\\\path")\n' in sdl

    def test_default_values(self) -> None:
        query = object_type(
            "Query",
            [
                FieldDef(
                    name="mangas",
                    type=TypeRef.named("MangaList"),
                    args=[InputValue(name="first", type=TypeRef.named("Int"), default_value="20")],
                )
            ],
        )
        assert "  mangas(first: Int = 20): MangaList\n" in to_sdl(snapshot(query))

    def test_deterministic(self) -> None:
        assert to_sdl(manga_snapshot()) == to_sdl(manga_snapshot())

    def test_malformed_type_ref_raises(self) -> None:
        broken = FieldDef.model_construct(
            name="broken",
            description=None,
            args=[],
            type=TypeRef.model_construct(kind="LIST", name=None, of_type=None),
            is_deprecated=False,
            deprecation_reason=None,
        )
        with pytest.raises(SchemaRenderError):
            to_sdl(snapshot(object_type("Manga", [broken])))


class TestSummarize:
    def test_summary(self) -> None:
        summary = summarize(manga_snapshot())
        assert "Server: http://localhost:4567" in summary
        assert "  OBJECT: 4\n" in summary
        assert "  SCALAR: 3\n" in summary
        assert "  ENUM: 1\n" in summary
        assert "Query Type: Query" in summary
        assert "Mutation Type: Mutation" in summary
        assert "Subscription Type" not in summary

    def test_summary_without_query_type(self) -> None:
        summary = summarize(snapshot(enum_type("ReadingStatus", ["READING"]), query=None))
        assert "Query Type: (none)" in summary
