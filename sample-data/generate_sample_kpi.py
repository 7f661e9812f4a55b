#!/usr/bin/env python3
"""
Generates sample-data/sample_kpi.csv, a GB18030 cell-performance export in
the carrier's hourly layout, for trying out nr-csv-analyzer.

Run from the repo root:
    python sample-data/generate_sample_kpi.py
    nr-csv-analyzer run sample-data/sample_kpi.csv --subtotals --grand-total

Problems baked in:
  - Columns in a shuffled order with a full-width bracket and padded whitespace
  - Mixed timestamp shapes (dash, slash, compact)
  - Percent signs and thousands separators in measure cells
  - One row with an unparseable time, one with an empty network
  - A handful of "N/A" and blank measure cells
"""

import csv
import random
from datetime import datetime, timedelta
from pathlib import Path

OUTPUT = Path(__file__).parent / "sample_kpi.csv"

HEADER = [
    "CI",
    "小区名称",
    "时间",
    "网络",
    "5G总流量（GB）",
    "5G最大用户数",
    "5G上行PRB利用率(%)",
    "5G下行PRB利用率(%)",
    "5G上行体验速率(Mbps)",
    "5G下行体验速率(Mbps)",
    "5G无线接通率(%)",
    "5G无线掉线率(%)",
    "5G切换成功率(%)",
    " 5G上行平均干扰(dBm) ",
]

CELLS = [
    ("460-00-1001-1", "城东基站-1", "NSA"),
    ("460-00-1001-2", "城东基站-2", "NSA"),
    ("460-00-2002-1", "城西基站-1", "SA"),
    ("460-00-2002-2", "城西基站-2", "SA"),
]

TIME_SHAPES = ["%Y-%m-%d %H:%M:%S", "%Y/%m/%d %H:%M", "%Y%m%d%H%M%S"]

rng = random.Random(20250101)
start = datetime(2025, 1, 1)
rows = []

for hour in range(72):
    stamp = start + timedelta(hours=hour)
    for ci, name, network in CELLS:
        rows.append([
            ci,
            name,
            stamp.strftime(rng.choice(TIME_SHAPES)),
            network,
            f"{rng.uniform(1, 1500):,.2f}",
            str(rng.randint(5, 300)),
            f"{rng.uniform(5, 80):.2f}%",
            f"{rng.uniform(10, 95):.2f}%",
            f"{rng.uniform(5, 60):.2f}",
            f"{rng.uniform(50, 900):.2f}",
            f"{rng.uniform(97, 100):.2f}%",
            f"{rng.uniform(0, 0.8):.3f}%",
            f"{rng.uniform(95, 100):.2f}%",
            f"{rng.uniform(-118, -100):.1f}",
        ])

# Broken rows
rows[5][2] = "昨天下午"
rows[9][3] = ""
for index in rng.sample(range(len(rows)), 6):
    rows[index][rng.randrange(4, len(HEADER))] = rng.choice(["N/A", "", "--"])

with open(OUTPUT, "w", encoding="gb18030", newline="") as handle:
    writer = csv.writer(handle, lineterminator="\n")
    writer.writerow(HEADER)
    writer.writerows(rows)

print(f"Wrote {len(rows)} rows to {OUTPUT}")
