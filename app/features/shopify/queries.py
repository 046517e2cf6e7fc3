"""ShopifyQL statements and their GraphQL envelope."""

from datetime import date

from app.features.shopify.schemas import DAILY_ANALYTICS_COLUMNS, PRODUCT_ANALYTICS_COLUMNS

SHOPIFYQL_ENVELOPE = '''
query {operation_name} {{
    shopifyqlQuery(query: """{shopifyql}""") {{
        tableData {{
            columns {{
                name
                dataType
            }}
            rows
        }}
        parseErrors
    }}
}}
'''


def daily_analytics_shopifyql(since: date, until: date) -> str:
    """Store-level sales and sessions grouped by day."""
    show = ", ".join(DAILY_ANALYTICS_COLUMNS)
    return (
        f"FROM sales, sessions SHOW {show} GROUP BY day "
        f"SINCE {since.isoformat()} UNTIL {until.isoformat()} ORDER BY day ASC"
    )


def product_analytics_shopifyql(since: date, until: date) -> str:
    """Sales grouped by day and product title."""
    show = ", ".join(PRODUCT_ANALYTICS_COLUMNS)
    return (
        f"FROM sales SHOW {show} GROUP BY day, product_title "
        f"SINCE {since.isoformat()} UNTIL {until.isoformat()} ORDER BY day ASC"
    )


def wrap_shopifyql(operation_name: str, shopifyql: str) -> str:
    """Embed a ShopifyQL statement in a ``shopifyqlQuery`` GraphQL document."""
    return SHOPIFYQL_ENVELOPE.format(operation_name=operation_name, shopifyql=shopifyql)
