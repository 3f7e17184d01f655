"""
Example: Basic SuccessFactors extraction with sap_sf
====================================================

This example shows how to resolve an entity's output schema and page
through its records.
"""

from sap_sf import ConnectionContext, SuccessFactorsConfig


def print_columns(columns, indent=0):
    for column in columns:
        print(f"{' ' * indent}{column.name}: {column.type} ({column.kind_name})")
        print_columns(column.get_child_list(), indent + 2)


def example_schema_and_records():
    """Schema for User with its manager expanded, then the first records."""

    cfg = SuccessFactorsConfig(
        base_url="https://apisalesdemo2.successfactors.eu/odata/v2",
        entity_name="User",
        username="USER@COMPANY",
        password="PASSWORD",
        filter_option="status eq 'active'",
        expand_option="manager",
        page_size=500,
    )

    with ConnectionContext(cfg) as conn:
        conn.service.check_url()

        print_columns(conn.schema())

        for page in conn.records(max_records=1000):
            print(f"Fetched {len(page)} records")


def example_from_environment():
    """Configuration from SF_* environment variables (or a .env file)."""

    with ConnectionContext() as conn:
        provider = conn.service.fetch_metadata()
        print("Entity sets:", [es.name for es in provider.get_default_entity_set()])
        print("Keys:", provider.get_key_property_names(conn.entity_name))


if __name__ == "__main__":
    print("=" * 60)
    print("Schema and records")
    print("=" * 60)
    example_schema_and_records()
