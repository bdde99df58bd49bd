"""Mapper configuration"""

from pydantic import BaseModel, ConfigDict, Field


class MapperConfig(BaseModel):
    """Configuration options for EntityMapper"""

    model_config = ConfigDict(frozen=True)

    db_schema: str | None = Field(default=None, description="Database schema name")
    detect_changes: bool = Field(
        default=True,
        description="Only write columns that differ from the stored row on update",
    )

    def qualify(self, table_name: str) -> str:
        """Return the table name prefixed with the configured schema, if any"""
        if self.db_schema:
            return f"{self.db_schema}.{table_name}"
        return table_name
