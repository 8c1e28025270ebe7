import logging
import sys

from mcp.server.fastmcp import FastMCP

# stdout carries the MCP protocol; diagnostics go to stderr only.
logging.basicConfig(
    stream=sys.stderr,
    level=logging.INFO,
    format="[StdioTestServer] %(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

mcp = FastMCP("StdioTest")
logger.info("StdioTest MCP Server instance created.")

_PRICES = {"ACME": 101.25, "INIT": 42.0}


@mcp.tool()
async def weather_today(city: str) -> str:
    """
    Get the current weather conditions for today.

    Parameters:
    city (str): Name of the city to report on.
    """
    logger.info("Tool 'weather_today' called with city: '%s'", city)
    return f"Sunny in {city}, 21C"


@mcp.tool()
async def weather_forecast(city: str, days: int = 3) -> str:
    """
    Get the weather forecast for the coming days.

    Parameters:
    city (str): Name of the city to forecast.
    days (int): Number of days ahead.
    """
    logger.info("Tool 'weather_forecast' called with city=%s, days=%s", city, days)
    return f"{days} day forecast for {city}: mild"


@mcp.tool()
async def stock_price(ticker: str) -> float:
    """
    Get the latest stock price for a ticker symbol.

    Parameters:
    ticker (str): Exchange ticker symbol.
    """
    logger.info("Tool 'stock_price' called with ticker: '%s'", ticker)
    if ticker not in _PRICES:
        raise ValueError(f"Unknown ticker '{ticker}'")
    return _PRICES[ticker]


if __name__ == "__main__":
    logger.info("Starting StdioTest MCP Server with stdio transport...")
    try:
        mcp.run(transport="stdio")
    except Exception as e:
        logger.exception("StdioTest MCP Server crashed: %s", e)
        sys.exit(1)
    logger.info("StdioTest MCP Server has shut down.")
