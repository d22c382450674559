import os
import socket
import threading
from typing import Dict, Optional, Any
from prometheus_client import (
    CollectorRegistry, Counter, Histogram, Gauge, Info,
    start_http_server
)
from loguru import logger

# Global metrics registry per service
_service_registries: Dict[str, "MetricsRegistry"] = {}
_metrics_servers: Dict[str, Any] = {}
_metrics_lock = threading.Lock()

DEFAULT_METRICS_PORT = 9200


class MetricsRegistry:
    """Centralized metrics registry for a service following logging conventions"""

    def __init__(self, service_name: str, port: Optional[int] = None):
        self.service_name = service_name
        self.registry = CollectorRegistry()
        self.port = port
        self.server = None

        self._init_common_metrics()

    def _init_common_metrics(self):
        """Initialize common metrics available to all services"""
        self.service_info = Info(
            'service_info',
            'Service information',
            registry=self.registry
        )
        self.service_info.info({
            'service_name': self.service_name,
            'component': 'gateway',
        })

        self.service_start_time = Gauge(
            'service_start_time_seconds',
            'Service start time in Unix timestamp',
            registry=self.registry
        )
        self.service_start_time.set_to_current_time()

        self.errors_total = Counter(
            'service_errors_total',
            'Total number of errors by type',
            ['error_type', 'component'],
            registry=self.registry
        )

        # Health status
        self.health_status = Gauge(
            'service_health_status',
            'Service health status (1=healthy, 0=unhealthy)',
            registry=self.registry
        )
        self.health_status.set(1)

    def create_counter(self, name: str, description: str, labelnames: list = None) -> Counter:
        """Create a counter metric with common labels"""
        return Counter(
            name, description,
            labelnames or [],
            registry=self.registry
        )

    def create_histogram(self, name: str, description: str, labelnames: list = None,
                        buckets: tuple = None) -> Histogram:
        """Create a histogram metric with common labels"""
        kwargs = {
            'name': name,
            'documentation': description,
            'labelnames': labelnames or [],
            'registry': self.registry
        }
        if buckets:
            kwargs['buckets'] = buckets
        return Histogram(**kwargs)

    def create_gauge(self, name: str, description: str, labelnames: list = None) -> Gauge:
        """Create a gauge metric with common labels"""
        return Gauge(
            name, description,
            labelnames or [],
            registry=self.registry
        )

    def start_metrics_server(self, port: Optional[int] = None) -> bool:
        """Start HTTP server for metrics endpoint"""
        if self.server is not None:
            logger.warning(f"Metrics server already running for {self.service_name}")
            return True

        target_port = port or self.port or self._get_default_port()

        try:
            if not self._is_port_available(target_port):
                logger.warning(f"Port {target_port} not available, trying next available port")
                target_port = self._find_available_port(target_port)

            self.server = start_http_server(target_port, registry=self.registry)
            self.port = target_port
            logger.info(f"Metrics server started for {self.service_name} on port {target_port}")
            logger.info(f"Metrics available at: http://localhost:{target_port}/metrics")
            return True

        except Exception as e:
            logger.error(f"Failed to start metrics server for {self.service_name}: {e}")
            return False

    def _get_default_port(self) -> int:
        """Get default port from GATEWAY_METRICS_PORT"""
        env_port = os.getenv('GATEWAY_METRICS_PORT')
        if env_port:
            try:
                return int(env_port)
            except ValueError:
                logger.warning(f"Invalid GATEWAY_METRICS_PORT value: {env_port}, using default")

        return DEFAULT_METRICS_PORT

    def _is_port_available(self, port: int) -> bool:
        """Check if port is available"""
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
                s.bind(('localhost', port))
                return True
        except OSError:
            return False

    def _find_available_port(self, start_port: int) -> int:
        """Find next available port starting from start_port"""
        for port in range(start_port, start_port + 100):
            if self._is_port_available(port):
                return port
        raise RuntimeError(f"No available ports found starting from {start_port}")

    def record_error(self, error_type: str, component: str = "unknown"):
        """Record an error occurrence"""
        self.errors_total.labels(error_type=error_type, component=component).inc()


def setup_metrics(service_name: str, port: Optional[int] = None,
                 start_server: bool = True) -> MetricsRegistry:
    """
    Setup metrics for a service following the same pattern as setup_enhanced_logger.

    Args:
        service_name: Name of the service (e.g., 'eth-gateway')
        port: Optional port for metrics server
        start_server: Whether to start HTTP server immediately

    Returns:
        MetricsRegistry: Configured metrics registry for the service
    """
    with _metrics_lock:
        if service_name in _service_registries:
            logger.debug(f"Metrics already setup for {service_name}")
            return _service_registries[service_name]

        metrics_registry = MetricsRegistry(service_name, port)
        _service_registries[service_name] = metrics_registry

        if start_server:
            success = metrics_registry.start_metrics_server()
            if success:
                _metrics_servers[service_name] = metrics_registry.server

        logger.info(f"Metrics setup completed for service: {service_name}")
        return metrics_registry


def shutdown_metrics_servers():
    """Shutdown all metrics servers"""
    with _metrics_lock:
        for service_name, server in _metrics_servers.items():
            try:
                # start_http_server returns (server, thread) on recent prometheus_client
                if isinstance(server, tuple):
                    server = server[0]
                if hasattr(server, 'shutdown'):
                    server.shutdown()
                logger.info(f"Shutdown metrics server for {service_name}")
            except Exception as e:
                logger.error(f"Error shutting down metrics server for {service_name}: {e}")

        _metrics_servers.clear()


DURATION_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.075, 0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0, 7.5, 10.0, float('inf'))


class GatewayMetrics:
    """Upstream node call metrics for the gateway"""

    def __init__(self, registry: MetricsRegistry):
        self.registry = registry

        self.rpc_calls_total = registry.create_counter(
            'rpc_calls_total',
            'Total calls issued to the upstream Ethereum node',
            ['method', 'status']
        )

        self.rpc_call_duration = registry.create_histogram(
            'rpc_call_duration_seconds',
            'Upstream Ethereum node call duration',
            ['method'],
            buckets=DURATION_BUCKETS
        )

        self.latest_block_height = registry.create_gauge(
            'chain_latest_block_height',
            'Most recent chain head height returned by the node'
        )

    def record_rpc_call(self, method: str, duration: float, success: bool = True):
        """Record one upstream call"""
        status = 'success' if success else 'error'
        self.rpc_calls_total.labels(method=method, status=status).inc()
        self.rpc_call_duration.labels(method=method).observe(duration)
        if not success:
            self.registry.record_error('rpc_error', component='node')

    def update_latest_block(self, block_height: int):
        """Update chain head gauge"""
        self.latest_block_height.set(block_height)
