from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from libs.py.alignment import ComparisonPoint
from libs.py.combined import PairLabels
from libs.py.heatmap import HeatmapCell
from libs.py.series import AlertRange, Indicator, Observation, Stats


class Meta(BaseModel):
    generated_at: Optional[str] = None
    config_version: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    base_source: Optional[str] = None
    points: Optional[int] = None
    warnings: Optional[List[str]] = None


class IndicatorSeriesResponse(BaseModel):
    indicator: Indicator
    data: List[Observation]
    stats: Stats
    alert_ranges: List[AlertRange]
    meta: Meta


class CombinedIndicatorResponse(BaseModel):
    main_indicator: Indicator = Field(serialization_alias="mainIndicator")
    comparison_data: List[ComparisonPoint] = Field(serialization_alias="comparisonData")
    spread_data: List[Observation] = Field(serialization_alias="spreadData")
    labels: PairLabels
    stats: Stats
    alert_ranges: List[AlertRange] = Field(serialization_alias="alertRanges")
    comparison_alert_ranges: List[AlertRange] = Field(serialization_alias="comparisonAlertRanges")
    meta: Meta


class HeatmapResponse(BaseModel):
    dates: List[str]
    indicators: Dict[str, List[Indicator]]
    status_map: Dict[str, Dict[str, Optional[HeatmapCell]]] = Field(serialization_alias="statusMap")
    meta: Meta


class FactorInfo(BaseModel):
    key: str
    name: Optional[str] = None
    description: Optional[str] = None


class IndicatorsResponse(BaseModel):
    factors: List[FactorInfo]
    indicators: Dict[str, List[Indicator]]
