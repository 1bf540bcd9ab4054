"""
PromQL query tables for the exporter helper tools.

Each table maps a metric category to an ordered list of ``(result key,
template)`` pairs. Templates use ``string.Template`` placeholders because
PromQL is full of braces:

  $instance  the scrape instance, placed inside a label matcher
  $range     the rate/averaging window, placed inside ``[...]``

``render_queries`` is pure; the tools in ``prometheus_mcp.tools.queries``
execute what it returns.
"""
from __future__ import annotations

from string import Template

ALL = "all"

QueryTable = dict[str, list[tuple[str, Template]]]


def _t(text: str) -> Template:
    return Template(text)


WINDOWS_EXPORTER: QueryTable = {
    "cpu": [
        ("cpuUsage", _t(
            '100 - (avg by (instance) (rate(windows_cpu_time_total{instance="$instance",mode="idle"}[$range])) * 100)'
        )),
    ],
    "memory": [
        ("memoryUsedBytes", _t('windows_os_physical_memory_free_bytes{instance="$instance"}')),
        ("memoryTotalBytes", _t('windows_cs_physical_memory_bytes{instance="$instance"}')),
        ("memoryUsedPercent", _t(
            '100 - (windows_os_physical_memory_free_bytes{instance="$instance"}'
            ' / windows_cs_physical_memory_bytes{instance="$instance"} * 100)'
        )),
    ],
    "disk": [
        ("diskFreeBytes", _t('windows_logical_disk_free_bytes{instance="$instance"}')),
        ("diskUsedPercent", _t(
            '100 - (windows_logical_disk_free_bytes{instance="$instance"}'
            ' / windows_logical_disk_size_bytes{instance="$instance"} * 100)'
        )),
    ],
    "network": [
        ("networkBytesReceived", _t('rate(windows_net_bytes_received_total{instance="$instance"}[$range])')),
        ("networkBytesSent", _t('rate(windows_net_bytes_sent_total{instance="$instance"}[$range])')),
    ],
    "services": [
        ("servicesRunning", _t('windows_service_state{instance="$instance",state="running"}')),
        ("servicesStopped", _t('windows_service_state{instance="$instance",state="stopped"}')),
    ],
}

_FS = 'fstype!~"tmpfs|overlay"'
_NIC = 'device!~"lo|veth.*|docker.*|br-.*"'

NODE_EXPORTER: QueryTable = {
    "cpu": [
        ("cpuUsagePercent", _t(
            '100 - (avg by (instance) (rate(node_cpu_seconds_total{instance="$instance",mode="idle"}[$range])) * 100)'
        )),
        ("cpuUserPercent", _t(
            'avg by (instance) (rate(node_cpu_seconds_total{instance="$instance",mode="user"}[$range])) * 100'
        )),
        ("cpuSystemPercent", _t(
            'avg by (instance) (rate(node_cpu_seconds_total{instance="$instance",mode="system"}[$range])) * 100'
        )),
        ("cpuIowaitPercent", _t(
            'avg by (instance) (rate(node_cpu_seconds_total{instance="$instance",mode="iowait"}[$range])) * 100'
        )),
    ],
    "memory": [
        ("memoryTotalBytes", _t('node_memory_MemTotal_bytes{instance="$instance"}')),
        ("memoryAvailableBytes", _t('node_memory_MemAvailable_bytes{instance="$instance"}')),
        ("memoryUsedPercent", _t(
            '100 - (node_memory_MemAvailable_bytes{instance="$instance"}'
            ' / node_memory_MemTotal_bytes{instance="$instance"} * 100)'
        )),
        ("swapUsedPercent", _t(
            '100 - (node_memory_SwapFree_bytes{instance="$instance"}'
            ' / node_memory_SwapTotal_bytes{instance="$instance"} * 100)'
        )),
    ],
    "disk": [
        ("diskReadBytesPerSec", _t('rate(node_disk_read_bytes_total{instance="$instance"}[$range])')),
        ("diskWriteBytesPerSec", _t('rate(node_disk_written_bytes_total{instance="$instance"}[$range])')),
        ("diskIOUtilization", _t('rate(node_disk_io_time_seconds_total{instance="$instance"}[$range]) * 100')),
    ],
    "filesystem": [
        ("filesystemUsedPercent", _t(
            f'100 - (node_filesystem_avail_bytes{{instance="$instance",{_FS}}}'
            f' / node_filesystem_size_bytes{{instance="$instance",{_FS}}} * 100)'
        )),
        ("filesystemAvailableBytes", _t(f'node_filesystem_avail_bytes{{instance="$instance",{_FS}}}')),
    ],
    "network": [
        ("networkReceiveBytesPerSec", _t(
            f'rate(node_network_receive_bytes_total{{instance="$instance",{_NIC}}}[$range])'
        )),
        ("networkTransmitBytesPerSec", _t(
            f'rate(node_network_transmit_bytes_total{{instance="$instance",{_NIC}}}[$range])'
        )),
        ("networkReceiveErrors", _t('rate(node_network_receive_errs_total{instance="$instance"}[$range])')),
        ("networkTransmitErrors", _t('rate(node_network_transmit_errs_total{instance="$instance"}[$range])')),
    ],
    "load": [
        ("load1", _t('node_load1{instance="$instance"}')),
        ("load5", _t('node_load5{instance="$instance"}')),
        ("load15", _t('node_load15{instance="$instance"}')),
        ("cpuCount", _t('count(node_cpu_seconds_total{instance="$instance",mode="idle"})')),
    ],
}


def render_queries(table: QueryTable, category: str, instance: str, time_range: str) -> dict[str, str]:
    """Return ``{result key: PromQL}`` for *category* (or every category for ``"all"``).

    Keys keep table order. Raises ``KeyError`` for a category the table
    does not define.
    """
    categories = list(table) if category == ALL else [category]
    rendered: dict[str, str] = {}
    for name in categories:
        for key, template in table[name]:
            rendered[key] = template.substitute(instance=instance, range=time_range)
    return rendered
