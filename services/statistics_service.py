# services/statistics_service.py

from datetime import timedelta

import numpy as np
import pandas as pd

AGGREGATION_FORMATS = {
    "minute": "%Y-%m-%d %H:%M",
    "hour": "%Y-%m-%d %H",
    "day": "%Y-%m-%d",
}


class StatisticsService:

    @staticmethod
    def average_power(values):
        if not values:
            return 0.0
        return round(float(np.mean(values)), 2)

    @staticmethod
    def aggregate_power_output(readings, aggregation, limit=None):
        """
        Bucket readings by minute, hour or day, newest bucket first.
        Each row: period, avgPowerKW, minPowerKW, maxPowerKW, readingCount.
        """
        if not readings:
            return []

        df = pd.DataFrame(readings, columns=["timestamp", "powerKW"])
        df["period"] = pd.to_datetime(df["timestamp"]).dt.strftime(AGGREGATION_FORMATS[aggregation])

        grouped = (df.groupby("period")["powerKW"]
                   .agg(["mean", "min", "max", "count"])
                   .sort_index(ascending=False))
        if limit:
            grouped = grouped.head(limit)

        return [
            {
                "period": period,
                "avgPowerKW": round(float(row["mean"]), 2),
                "minPowerKW": round(float(row["min"]), 2),
                "maxPowerKW": round(float(row["max"]), 2),
                "readingCount": int(row["count"]),
            }
            for period, row in grouped.iterrows()
        ]

    @staticmethod
    def status_breakdown(orders):
        if not orders:
            return []
        df = pd.DataFrame(orders, columns=["status"])
        counts = df["status"].value_counts().sort_index()
        return [{"status": status, "count": int(count)} for status, count in counts.items()]

    @staticmethod
    def average_resolution_days(orders):
        if not orders:
            return 0.0
        df = pd.DataFrame(orders, columns=["status", "creationDate", "resolutionDate"])
        closed = df[(df["status"] == "closed") & df["resolutionDate"].notna()]
        if closed.empty:
            return 0.0

        durations = pd.to_datetime(closed["resolutionDate"]) - pd.to_datetime(closed["creationDate"])
        days = durations.dt.total_seconds() / 86400
        return round(float(np.mean(days)), 2)

    @staticmethod
    def creation_trends(orders, now, days=30):
        if not orders:
            return []
        created = pd.to_datetime(pd.DataFrame(orders, columns=["creationDate"])["creationDate"])
        recent = created[created >= now - timedelta(days=days)]
        counts = recent.dt.strftime("%Y-%m-%d").value_counts().sort_index()
        return [{"date": date, "count": int(count)} for date, count in counts.items()]

    @classmethod
    def work_order_statistics(cls, orders, now):
        return {
            "statusDistribution": cls.status_breakdown(orders),
            "creationTrends": cls.creation_trends(orders, now),
            "averageResolutionDays": cls.average_resolution_days(orders),
        }
