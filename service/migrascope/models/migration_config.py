from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

PROCESS_FLAGS = (
    "do_all_schemas",
    "do_table",
    "do_synonyms",
    "do_data",
    "do_object_type_spec",
    "do_object_type_body",
    "do_package_spec",
    "do_package_body",
    "do_view_signature",
    "do_view_ddl",
    "do_triggers",
    "do_constraints",
    "do_indexes",
    "do_write_rest_controllers",
    "do_write_postgre_files",
    "do_execute_postgre_files",
    "do_rest_controller_functions",
    "do_rest_controller_procedures",
)

SCOPE_FIELD = "do_only_test_schema"

CONNECTION_FIELDS = (
    "oracle_url",
    "oracle_user",
    "oracle_password",
    "postgre_url",
    "postgre_username",
    "postgre_password",
)

PATH_FIELDS = (
    "java_generated_package_name",
    "path_target_project_root",
    "path_target_project_java",
    "path_target_project_resources",
    "path_target_project_postgre",
)


class MigrationConfig(BaseModel):
    """Runtime configuration of the migration service, as edited in the dashboard."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    # Process flags
    do_all_schemas: bool = False
    do_table: bool = False
    do_synonyms: bool = False
    do_data: bool = False
    do_object_type_spec: bool = False
    do_object_type_body: bool = False
    do_package_spec: bool = False
    do_package_body: bool = False
    do_view_signature: bool = False
    do_view_ddl: bool = False
    do_triggers: bool = False
    do_constraints: bool = False
    do_indexes: bool = False
    do_write_rest_controllers: bool = False
    do_write_postgre_files: bool = False
    do_execute_postgre_files: bool = False
    do_rest_controller_functions: bool = False
    do_rest_controller_procedures: bool = False

    # Restrict extraction to one schema; empty = no restriction
    do_only_test_schema: str = ""

    # Connection settings
    oracle_url: str = ""
    oracle_user: str = ""
    oracle_password: str = ""
    postgre_url: str = ""
    postgre_username: str = ""
    postgre_password: str = ""

    # Path settings
    java_generated_package_name: str = ""
    path_target_project_root: str = ""
    path_target_project_java: str = ""
    path_target_project_resources: str = ""
    path_target_project_postgre: str = ""

    @field_validator(*PROCESS_FLAGS, mode="before")
    @classmethod
    def _null_flag(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator(SCOPE_FIELD, *CONNECTION_FIELDS, *PATH_FIELDS, mode="before")
    @classmethod
    def _null_text(cls, value: Any) -> Any:
        return "" if value is None else value

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)
