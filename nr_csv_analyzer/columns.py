"""Fixed column vocabulary for 5G cell-performance exports."""

from __future__ import annotations

TIME_COLUMN = "时间"
CELL_ID_COLUMN = "CI"
NETWORK_COLUMN = "网络"
CELL_NAME_COLUMN = "小区名称"

FLOW_COLUMN = "5G总流量(GB)"
MAX_USERS_COLUMN = "5G最大用户数"
UL_PRB_COLUMN = "5G上行PRB利用率(%)"
DL_PRB_COLUMN = "5G下行PRB利用率(%)"
UL_RATE_COLUMN = "5G上行体验速率(Mbps)"
DL_RATE_COLUMN = "5G下行体验速率(Mbps)"
ACCESS_RATE_COLUMN = "5G无线接通率(%)"
DROP_RATE_COLUMN = "5G无线掉线率(%)"
HANDOVER_RATE_COLUMN = "5G切换成功率(%)"
INTERFERENCE_COLUMN = "5G上行平均干扰(dBm)"

REQUIRED_COLUMNS: tuple[str, ...] = (
    TIME_COLUMN,
    CELL_ID_COLUMN,
    NETWORK_COLUMN,
    CELL_NAME_COLUMN,
    FLOW_COLUMN,
    MAX_USERS_COLUMN,
    UL_PRB_COLUMN,
    DL_PRB_COLUMN,
    UL_RATE_COLUMN,
    DL_RATE_COLUMN,
    ACCESS_RATE_COLUMN,
    DROP_RATE_COLUMN,
    HANDOVER_RATE_COLUMN,
    INTERFERENCE_COLUMN,
)

OUTPUT_COLUMNS: tuple[str, ...] = (
    TIME_COLUMN,
    NETWORK_COLUMN,
    FLOW_COLUMN,
    MAX_USERS_COLUMN,
    UL_PRB_COLUMN,
    DL_PRB_COLUMN,
    UL_RATE_COLUMN,
    DL_RATE_COLUMN,
    ACCESS_RATE_COLUMN,
    DROP_RATE_COLUMN,
    HANDOVER_RATE_COLUMN,
    INTERFERENCE_COLUMN,
)

# (column, attribute) pairs; the attribute names are shared by AggBucket and OutputRow.
SUM_FIELDS: tuple[tuple[str, str], ...] = (
    (FLOW_COLUMN, "flow"),
    (MAX_USERS_COLUMN, "max_users"),
)

AVERAGE_FIELDS: tuple[tuple[str, str], ...] = (
    (UL_PRB_COLUMN, "ul_prb"),
    (DL_PRB_COLUMN, "dl_prb"),
    (UL_RATE_COLUMN, "ul_rate"),
    (DL_RATE_COLUMN, "dl_rate"),
    (ACCESS_RATE_COLUMN, "access_rate"),
    (DROP_RATE_COLUMN, "drop_rate"),
    (HANDOVER_RATE_COLUMN, "handover_rate"),
    (INTERFERENCE_COLUMN, "interference"),
)

# Every output column gets an invalid-value counter, pre-initialised to zero.
TRACKED_FIELDS: tuple[str, ...] = OUTPUT_COLUMNS

GRAND_TOTAL_LABEL = "总计"
OUTPUT_SUFFIX = "-统计"


def empty_invalid_field_stats() -> dict[str, int]:
    return {column: 0 for column in TRACKED_FIELDS}
