"""
External data source adapters.

Each adapter turns one public health feed into normalized
SurveillanceDataPoint lists behind the DataSourceAdapter protocol.
"""
