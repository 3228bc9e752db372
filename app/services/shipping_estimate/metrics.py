# app/services/shipping_estimate/metrics.py
from prometheus_client import Counter, Histogram

# 估算结果：ok / no_province / empty_cart / error
shipping_estimates_total = Counter(
    "shipping_estimates_total", "Shipping estimates computed", ["outcome"]
)

# 单卖家（或一次批量）规则拉取耗时
shipping_rule_fetch_seconds = Histogram(
    "shipping_rule_fetch_seconds", "Shipping rule fetch duration seconds", ["backend"]
)

shipping_rule_store_errors_total = Counter(
    "shipping_rule_store_errors_total", "Shipping rule store failures", ["backend"]
)

# 命中层级：city / province / none
shipping_tariff_level_total = Counter(
    "shipping_tariff_level_total", "Resolved tariffs by specificity level", ["level"]
)
