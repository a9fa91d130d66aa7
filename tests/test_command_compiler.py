"""
Tests for SQL rendering
"""

import pytest

from redshift_etl.core import command_compiler as compiler
from redshift_etl.core.copy_options import CopyOption, extract_copy_options
from redshift_etl.core.exceptions import CompileError
from redshift_etl.models.credentials import AWSCredentials
from redshift_etl.models.table_desc import TableDescriptor

LOCATION = 's3://bucket/stage/users/abc/'


class TestCompileCopyCommand:
    """COPY rendering"""

    def test_scenario_gzip_and_delimiter(self, users_desc):
        options = extract_copy_options({'copyoptions.GZIP': None, 'copyoptions.DELIMITER': '|'})

        command = compiler.compile_copy_command(
            users_desc, options, LOCATION, AWSCredentials.RUNTIME_DETERMINED
        )

        assert "GZIP" in command
        assert "DELIMITER '|' " in command
        assert command.index("DELIMITER '|' ") < command.index("GZIP")

    def test_full_shape_with_ambient_credentials(self, users_desc):
        command = compiler.compile_copy_command(
            users_desc, {CopyOption.GZIP: None}, LOCATION, AWSCredentials.RUNTIME_DETERMINED
        )
        assert command == (
            "COPY users (id, name) FROM 's3://bucket/stage/users/abc/' IAM_ROLE default  GZIP ;"
        )

    def test_explicit_credentials_clause(self, users_desc):
        command = compiler.compile_copy_command(
            users_desc, {}, LOCATION, AWSCredentials('AKIAX', 'sec')
        )
        assert "CREDENTIALS 'aws_access_key_id=AKIAX;aws_secret_access_key=sec'" in command

    def test_redacted_credentials_hide_secret(self, users_desc):
        command = compiler.compile_copy_command(
            users_desc, {}, LOCATION, AWSCredentials('AKIAX', 'sec').redacted()
        )
        assert 'sec' not in command.replace('aws_secret_access_key', '')
        assert 'AKIAX' not in command

    def test_idempotent(self, users_desc):
        options_a = {CopyOption.MAXERROR: '5', CopyOption.GZIP: None, CopyOption.CSV: '"'}
        options_b = {CopyOption.CSV: '"', CopyOption.GZIP: None, CopyOption.MAXERROR: '5'}
        creds = AWSCredentials('a', 'b')

        first = compiler.compile_copy_command(users_desc, options_a, LOCATION, creds)
        second = compiler.compile_copy_command(users_desc, options_b, LOCATION, creds)

        assert first == second

    def test_target_table_override(self, users_desc):
        command = compiler.compile_copy_command(
            users_desc, {}, LOCATION, AWSCredentials.RUNTIME_DETERMINED, table_name='users_stage_1'
        )
        assert command.startswith("COPY users_stage_1 (id, name)")

    @pytest.mark.parametrize('desc', [
        TableDescriptor(None, ['id']),
        TableDescriptor('users', []),
        TableDescriptor('users', ['id'], distribution_key='missing'),
        TableDescriptor('users', ['id'], sort_keys=['missing']),
        TableDescriptor('users; DROP TABLE x', ['id']),
        TableDescriptor('users', ['id', 'id']),
    ])
    def test_incomplete_descriptor_raises(self, desc):
        with pytest.raises(CompileError):
            compiler.compile_copy_command(desc, {}, LOCATION, AWSCredentials.RUNTIME_DETERMINED)

    def test_missing_location_raises(self, users_desc):
        with pytest.raises(CompileError):
            compiler.compile_copy_command(users_desc, {}, '', AWSCredentials.RUNTIME_DETERMINED)

    def test_location_quote_escaped(self, users_desc):
        command = compiler.compile_copy_command(
            users_desc, {}, "s3://b/it's/", AWSCredentials.RUNTIME_DETERMINED
        )
        assert "FROM 's3://b/it''s/'" in command


class TestDDL:
    """CREATE/DROP rendering"""

    def test_create_table_with_keys(self, users_desc):
        assert compiler.compile_create_table(users_desc) == (
            "CREATE TABLE users (id BIGINT, name VARCHAR(64)) DISTKEY(id) SORTKEY(id);"
        )

    def test_create_table_requires_types(self):
        with pytest.raises(CompileError):
            compiler.compile_create_table(TableDescriptor('t', ['id', 'name'], ['INT']))

    def test_drop_table(self):
        assert compiler.compile_drop_table('sales.orders') == "DROP TABLE IF EXISTS sales.orders;"

    def test_create_like(self):
        assert compiler.compile_create_like('users_stage_1', 'users') == (
            "CREATE TABLE users_stage_1 (LIKE users);"
        )

    def test_quoted_identifiers_allowed(self):
        desc = TableDescriptor('"Sales"."Orders"', ['"Id"'], ['INT'])
        assert compiler.compile_create_table(desc) == 'CREATE TABLE "Sales"."Orders" ("Id" INT);'


class TestMergeAndQueries:
    """Merge, insert and select rendering"""

    def test_merge_statements(self, users_desc):
        statements = compiler.compile_merge_statements(users_desc, 'users_stage_1')
        assert statements == [
            "DELETE FROM users USING users_stage_1 WHERE users.id = users_stage_1.id;",
            "INSERT INTO users (id, name) SELECT id, name FROM users_stage_1;",
        ]

    def test_merge_requires_distribution_key(self):
        with pytest.raises(CompileError):
            compiler.compile_merge_statements(TableDescriptor('t', ['id']), 't_stage')

    def test_insert_statement(self, users_desc):
        assert compiler.compile_insert_statement(users_desc) == (
            "INSERT INTO users (id, name) VALUES (%s, %s)"
        )

    def test_select_with_alias(self, users_desc):
        assert compiler.compile_select_statement(users_desc) == "SELECT u.id, u.name FROM users u"

    def test_select_without_alias(self, users_desc):
        assert compiler.compile_select_statement(users_desc, table_alias=False) == (
            "SELECT id, name FROM users"
        )

    def test_count(self):
        assert compiler.compile_count('users') == "SELECT COUNT(*) FROM users"
