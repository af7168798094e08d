"""
Communication Package

Typed views of the JSON the device serves over HTTP. Transport itself
(polling /api/status and /api/dash, POST /api/config) lives outside
this package.
"""

from .telemetry import TelemetrySnapshot, Reading, OneWireBus, OneWireDevice, RemoteTemp, OpenThermState

__all__ = [
    'TelemetrySnapshot',
    'Reading',
    'OneWireBus',
    'OneWireDevice',
    'RemoteTemp',
    'OpenThermState',
]
