import copy

import pytest


@pytest.fixture()
def alpha_vantage_daily():
    return {
        "Meta Data": {
            "1. Information": "Daily Prices (open, high, low, close) and Volumes",
            "2. Symbol": "IBM",
            "3. Last Refreshed": "2024-01-04",
            "4. Output Size": "Compact",
            "5. Time Zone": "US/Eastern",
        },
        "Time Series (Daily)": {
            "2024-01-04": {
                "1. open": "162.0300",
                "2. high": "162.5000",
                "3. low": "160.1000",
                "4. close": "161.1000",
                "5. volume": "4502245",
            },
            "2024-01-02": {
                "1. open": "161.0000",
                "2. high": "163.2900",
                "3. low": "160.2600",
                "4. close": "162.8300",
                "5. volume": "3935458",
            },
            "2024-01-03": {
                "1. open": "161.0000",
                "2. high": "161.7300",
                "3. low": "160.0500",
                "4. close": "160.3900",
                "5. volume": "4086010",
            },
        },
    }


@pytest.fixture()
def alpha_vantage_intraday():
    return {
        "Meta Data": {
            "1. Information": "Intraday (5min) open, high, low, close prices and volume",
            "2. Symbol": "MSFT",
            "3. Last Refreshed": "2024-01-05 19:55:00",
            "4. Interval": "5min",
            "5. Output Size": "Compact",
            "6. Time Zone": "US/Eastern",
        },
        "Time Series (5min)": {
            "2024-01-05 19:55:00": {
                "1. open": "367.7500",
                "2. high": "367.8000",
                "3. low": "367.7000",
                "4. close": "367.7500",
                "5. volume": "1254",
            },
            "2024-01-05 19:50:00": {
                "1. open": "367.8000",
                "2. high": "367.8500",
                "3. low": "367.7500",
                "4. close": "367.7500",
                "5. volume": "982",
            },
        },
    }


@pytest.fixture()
def alpha_vantage_global_quote():
    return {
        "Global Quote": {
            "01. symbol": "IBM",
            "02. open": "161.0000",
            "03. high": "162.7400",
            "04. low": "160.2900",
            "05. price": "162.5000",
            "06. volume": "3456789",
            "07. latest trading day": "2024-01-05",
            "08. previous close": "161.2000",
            "09. change": "1.3000",
            "10. change percent": "0.8065%",
        }
    }


@pytest.fixture()
def alpha_vantage_rate_limit():
    return {
        "Information": "Thank you for using Alpha Vantage! Our standard API rate limit is 25 requests per day."
    }


@pytest.fixture()
def finnhub_candles():
    return {
        "c": [185.64, 184.25, 181.91, 181.18],
        "h": [188.44, 185.88, 184.26, 182.76],
        "l": [183.89, 183.43, 181.5, 180.17],
        "o": [187.15, 184.22, 182.15, 181.99],
        "s": "ok",
        "t": [1704153600, 1704240000, 1704326400, 1704412800],
        "v": [82488674, 58414460, 71983570, 62303264],
    }


def _trending_stock(ticker, name, price, percent_change, net_change):
    return {
        "ticker_id": ticker,
        "company_name": name,
        "price": price,
        "percent_change": percent_change,
        "net_change": net_change,
        "bid": "0.00",
        "ask": "0.00",
        "high": price,
        "low": price,
        "open": price,
        "low_circuit_limit": "100.00",
        "up_circuit_limit": "200.00",
        "volume": "4567891",
        "date": "2024-01-05",
        "time": "15:29:59",
        "close": price,
        "overall_rating": "Bullish",
        "short_term_trends": "Bullish",
        "long_term_trends": "Moderately Bullish",
        "52_week_low": "101.20",
        "52_week_high": "199.00",
    }


@pytest.fixture()
def indian_trending():
    return {
        "trending_stocks": {
            "top_gainers": [
                _trending_stock("S0003", "Tata Steel", "145.50", "3.25", "4.58"),
                _trending_stock("S0012", "Hindalco Industries", "598.35", "2.91", "16.90"),
                _trending_stock("S0044", "JSW Steel", "862.10", "2.12", "17.90"),
            ],
            "top_losers": [
                _trending_stock("S0101", "Bajaj Finance", "7102.75", "-2.35", "-170.85"),
                _trending_stock("S0222", "Asian Paints", "3301.40", "-1.10", "-36.70"),
            ],
        }
    }


@pytest.fixture()
def indian_historical():
    return {
        "datasets": [
            {
                "metric": "Price",
                "label": "Price on NSE",
                "values": [
                    ["2024-01-01", "2585.05"],
                    ["2024-01-02", "2587.00"],
                    ["2024-01-03", "2561.45"],
                ],
                "meta": {"is_weekly": False},
            },
            {
                "metric": "Volume",
                "label": "Volume",
                "values": [
                    ["2024-01-01", 3410239],
                    ["2024-01-02", 5621845],
                    ["2024-01-03", 6312098],
                ],
                "meta": {},
            },
        ]
    }


@pytest.fixture()
def root_quote_array():
    return [
        {"symbol": "AAPL", "price": 185.92, "change": 1.25, "volume": 52164500},
        {"symbol": "MSFT", "price": 367.75, "change": -2.1, "volume": 20901500},
    ]


@pytest.fixture()
def ohlcv_array():
    return {
        "data": [
            {"date": "2024-01-02", "open": 10.0, "high": 11.0, "low": 9.5, "close": 10.5, "volume": 1000},
            {"date": "2024-01-03", "open": 10.5, "high": 12.0, "low": 10.1, "close": 11.8, "volume": 1500},
        ]
    }


@pytest.fixture()
def deep_copy():
    return copy.deepcopy
