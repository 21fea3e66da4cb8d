"""
Example: Basic Service Layer usage with sap_sl
==============================================

This example shows how to log in, read and write single resources, and
follow paged queries.
"""

from sap_sl import NormalizedError, ServiceLayer, ServiceLayerConfig
from sap_sl.odata import build_query, escape_odata_literal


def example_basic_usage():
    """Login, CRUD and paging."""

    cfg = ServiceLayerConfig(
        host="https://your-b1.example.com",
        company="SBODEMOUS",
        username="manager",
        password="PASSWORD",
        debug=True,
    )

    with ServiceLayer() as sl:
        sl.create_session(cfg)

        # Single resource: failures come back as NormalizedError
        order = sl.get("Orders(10)")
        if isinstance(order, NormalizedError):
            print("Could not read order:", order.message)
        else:
            print("Order", order["DocNum"], order["CardCode"])

        result = sl.patch("Orders(10)", {"Comments": "Updated from sap_sl"})
        if isinstance(result, NormalizedError):
            print("Update failed:", result.message)

        # Paged query: errors raise
        name = escape_odata_literal("O'Brien")
        q = build_query(
            "BusinessPartners",
            fields=["CardCode", "CardName"],
            filter_expr=f"CardName eq '{name}'",
            orderby="CardCode",
        )
        partners = sl.find(q)
        print(f"Found {len(partners)} business partners")


def example_connection_context():
    """Using ConnectionContext with SL_* environment variables."""
    from sap_sl import ConnectionContext

    # Reads SL_HOST, SL_COMPANY, SL_USER, SL_PASS (and optional SL_PORT, SL_VERSION)
    with ConnectionContext() as conn:
        items = conn.client.find("Items?$select=ItemCode,ItemName")
        print(f"Found {len(items)} items")


if __name__ == "__main__":
    # Uncomment the example you want to run
    # example_basic_usage()
    # example_connection_context()

    print("Set up your environment variables and uncomment an example to run.")
    print("Required: SL_HOST, SL_COMPANY, SL_USER, SL_PASS")
