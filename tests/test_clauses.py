"""
Tests for the soft-delete statement modifiers.

These run the modifiers against in-memory statements and inspect the clauses
they leave behind, without touching a database.
"""

from datetime import datetime

import pytest
from sqlalchemy import Column, Integer, String, Update
from sqlalchemy.orm import declarative_base

from softdelete_toolkit.soft_delete import (
    DELETED_BY,
    DeletedAt,
    DeletedAtType,
    bind_actor,
    exclude_deleted,
    rewrite_delete,
)
from softdelete_toolkit.statement import AndConditions, Schema, Statement, Where, or_
from softdelete_toolkit.statement.statement import SOFT_DELETE_MARKER

Base = declarative_base()

NOW = datetime(2024, 5, 1, 12, 0, 0)


class Document(Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True)
    title = Column(String(100))
    deleted_at = Column(DeletedAtType(), info={"actor_field": "deleted_by"})
    deleted_by = Column(String(100))


class Archive(Base):
    __tablename__ = "archives"

    id = Column(Integer, primary_key=True)
    deleted_at = Column(DeletedAtType(), info={"zero_value": "2000-01-01"})


class Ledger(Base):
    __tablename__ = "ledgers"

    id = Column(Integer, primary_key=True)
    deleted_at = Column(DeletedAtType(), info={"zero_value": "soon"})


class Membership(Base):
    __tablename__ = "memberships"

    org_id = Column(Integer, primary_key=True)
    user_id = Column(String(20), primary_key=True)
    deleted_at = Column(DeletedAtType())


def soft_delete_field(model):
    return Schema.parse(model).delete_clauses[0].field


def make_statement(model_cls, /, **kwargs):
    kwargs.setdefault("now_func", lambda: NOW)
    return Statement(Schema.parse(model_cls), **kwargs)


def render_where(stmt):
    expr = stmt.clauses["WHERE"].to_sql(stmt.schema.table)
    return str(expr.compile(compile_kwargs={"literal_binds": True}))


class TestExcludeDeleted:
    """Test the exclusion predicate."""

    def test_adds_is_null_predicate(self):
        stmt = make_statement(Document)
        exclude_deleted(stmt, soft_delete_field(Document))
        assert render_where(stmt) == "documents.deleted_at IS NULL"

    def test_keeps_user_predicates_first(self):
        stmt = make_statement(Document)
        stmt.add_clause(Where([Document.title == "draft"]))
        exclude_deleted(stmt, soft_delete_field(Document))
        assert render_where(stmt) == (
            "documents.title = 'draft' AND documents.deleted_at IS NULL"
        )

    def test_is_idempotent(self):
        stmt = make_statement(Document)
        field = soft_delete_field(Document)
        exclude_deleted(stmt, field)
        exclude_deleted(stmt, field)
        assert len(stmt.clauses["WHERE"].exprs) == 1

    def test_unscoped_is_left_alone(self):
        stmt = make_statement(Document, unscoped=True)
        exclude_deleted(stmt, soft_delete_field(Document))
        assert "WHERE" not in stmt.clauses

    def test_or_condition_is_grouped(self):
        stmt = make_statement(Document)
        stmt.add_clause(Where([Document.title == "a", or_(Document.title == "b")]))
        exclude_deleted(stmt, soft_delete_field(Document))

        exprs = stmt.clauses["WHERE"].exprs
        assert len(exprs) == 2
        assert isinstance(exprs[0], AndConditions)
        assert render_where(stmt) == (
            "(documents.title = 'a' OR documents.title = 'b') "
            "AND documents.deleted_at IS NULL"
        )

    def test_ungrouped_or_would_bind_to_last_branch(self):
        stmt = make_statement(Document)
        stmt.add_clause(Where([Document.title == "a", or_(Document.title == "b")]))
        stmt.mark(SOFT_DELETE_MARKER)
        stmt.add_clause(Where([Document.deleted_at.is_(None)]))
        assert render_where(stmt) == (
            "documents.title = 'a' OR documents.title = 'b' "
            "AND documents.deleted_at IS NULL"
        )

    def test_multi_expression_or_is_not_regrouped(self):
        stmt = make_statement(Document)
        stmt.add_clause(
            Where([or_(Document.title == "a", Document.title == "b")])
        )
        exclude_deleted(stmt, soft_delete_field(Document))

        exprs = stmt.clauses["WHERE"].exprs
        assert not isinstance(exprs[0], AndConditions)
        assert render_where(stmt) == (
            "(documents.title = 'a' OR documents.title = 'b') "
            "AND documents.deleted_at IS NULL"
        )

    def test_zero_value_sentinel_is_used_literally(self):
        stmt = make_statement(Archive)
        exclude_deleted(stmt, soft_delete_field(Archive))
        assert render_where(stmt) == "archives.deleted_at = '2000-01-01'"

    def test_unparseable_zero_value_uses_null(self):
        stmt = make_statement(Ledger)
        exclude_deleted(stmt, soft_delete_field(Ledger))
        assert render_where(stmt) == "ledgers.deleted_at IS NULL"

    def test_added_through_query_modifier(self):
        stmt = make_statement(Document)
        stmt.add_clause(Schema.parse(Document).query_clauses[0])
        assert render_where(stmt) == "documents.deleted_at IS NULL"


class TestUpdateModifier:
    """Test the update-statement modifier."""

    def test_scopes_pending_update(self):
        stmt = make_statement(Document)
        stmt.add_clause(Schema.parse(Document).update_clauses[0])
        assert render_where(stmt) == "documents.deleted_at IS NULL"

    def test_skips_rendered_statement(self):
        stmt = make_statement(Document)
        stmt.sql = object()
        stmt.add_clause(Schema.parse(Document).update_clauses[0])
        assert "WHERE" not in stmt.clauses

    def test_skips_unscoped_statement(self):
        stmt = make_statement(Document, unscoped=True)
        stmt.add_clause(Schema.parse(Document).update_clauses[0])
        assert "WHERE" not in stmt.clauses


class TestBindActor:
    """Test recording who deleted a row."""

    def test_actor_from_context(self):
        document = Document(id=1, title="report")
        stmt = make_statement(Document, dest=document, context={DELETED_BY: "alice"})

        assignment = bind_actor(stmt, soft_delete_field(Document))

        assert assignment is not None
        assert assignment.column.name == "deleted_by"
        assert assignment.value == "alice"
        assert stmt.column_values == {"deleted_by": "alice"}

        stmt.apply_columns()
        assert document.deleted_by == "alice"

    def test_no_actor_in_context(self):
        stmt = make_statement(Document, dest=Document(id=1))
        assert bind_actor(stmt, soft_delete_field(Document)) is None

    def test_no_actor_field_configured(self):
        stmt = make_statement(Archive, context={DELETED_BY: "alice"})
        assert bind_actor(stmt, soft_delete_field(Archive)) is None


class TestRewriteDelete:
    """Test rewriting a delete into a soft delete."""

    def test_scopes_by_primary_keys(self):
        documents = [Document(id=i) for i in (1, 2, 3)]
        stmt = make_statement(Document, dest=documents)

        rewrite_delete(stmt, soft_delete_field(Document))

        assert render_where(stmt) == (
            "documents.id IN (1, 2, 3) AND documents.deleted_at IS NULL"
        )

    def test_builds_update_with_timestamp_and_actor(self):
        document = Document(id=7, title="report")
        stmt = make_statement(Document, dest=document, context={DELETED_BY: "alice"})

        rewrite_delete(stmt, soft_delete_field(Document))

        assignments = [(a.column.name, a.value) for a in stmt.clauses["SET"]]
        assert assignments == [("deleted_at", NOW), ("deleted_by", "alice")]
        assert isinstance(stmt.sql, Update)
        params = stmt.sql.compile().params
        assert params["deleted_at"] == NOW
        assert params["deleted_by"] == "alice"

    def test_no_actor_assignment_without_context(self):
        stmt = make_statement(Document, dest=Document(id=7))
        rewrite_delete(stmt, soft_delete_field(Document))
        assert [a.column.name for a in stmt.clauses["SET"]] == ["deleted_at"]

    def test_marks_in_memory_record(self):
        document = Document(id=7)
        stmt = make_statement(Document, dest=document, context={DELETED_BY: "bob"})

        rewrite_delete(stmt, soft_delete_field(Document))
        assert document.deleted_at is None

        stmt.apply_columns()
        assert document.deleted_at == DeletedAt(NOW)
        assert document.deleted_by == "bob"

    def test_keeps_user_conditions(self):
        stmt = make_statement(Document, dest=Document)
        stmt.add_clause(Where([Document.title == "draft"]))

        rewrite_delete(stmt, soft_delete_field(Document))

        assert render_where(stmt) == (
            "documents.title = 'draft' AND documents.deleted_at IS NULL"
        )

    def test_distinct_model_adds_second_key_scope(self):
        stmt = make_statement(
            Document, dest=Document(id=5), model=[Document(id=7), Document(id=8)]
        )

        rewrite_delete(stmt, soft_delete_field(Document))

        assert render_where(stmt) == (
            "documents.id IN (5) AND documents.id IN (7, 8) "
            "AND documents.deleted_at IS NULL"
        )

    def test_same_model_scopes_once(self):
        document = Document(id=5)
        stmt = make_statement(Document, dest=document, model=document)
        rewrite_delete(stmt, soft_delete_field(Document))
        assert render_where(stmt) == (
            "documents.id IN (5) AND documents.deleted_at IS NULL"
        )

    def test_records_without_keys_are_not_scoped(self):
        stmt = make_statement(Document, dest=[Document(title="unsaved")])
        stmt.add_clause(Where([Document.title == "unsaved"]))
        rewrite_delete(stmt, soft_delete_field(Document))
        assert "IN" not in render_where(stmt)

    def test_composite_primary_key(self):
        memberships = [
            Membership(org_id=1, user_id="x"),
            Membership(org_id=2, user_id="y"),
        ]
        stmt = make_statement(Membership, dest=memberships)

        rewrite_delete(stmt, soft_delete_field(Membership))

        condition = stmt.clauses["WHERE"].exprs[0]
        assert [c.name for c in condition.column] == ["org_id", "user_id"]
        assert condition.values == ((1, "x"), (2, "y"))

    def test_unscoped_delete_is_not_rewritten(self):
        document = Document(id=7)
        stmt = make_statement(Document, dest=document, unscoped=True)

        rewrite_delete(stmt, soft_delete_field(Document))

        assert stmt.clauses == {}
        assert stmt.sql is None
        assert document.deleted_at is None

    def test_rendered_statement_is_not_rewritten(self):
        stmt = make_statement(Document, dest=Document(id=7))
        stmt.sql = rendered = object()

        rewrite_delete(stmt, soft_delete_field(Document))

        assert stmt.sql is rendered
        assert stmt.clauses == {}

    def test_clock_failure_aborts_before_building(self):
        def broken_clock():
            raise RuntimeError("clock unavailable")

        stmt = make_statement(Document, dest=Document(id=7), now_func=broken_clock)

        with pytest.raises(RuntimeError):
            rewrite_delete(stmt, soft_delete_field(Document))

        assert stmt.sql is None
        assert "SET" not in stmt.clauses
