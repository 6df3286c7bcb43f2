"""Home Hub API client.

``Hub`` exposes the hub's configuration values and controls as typed methods.
Each method builds one action, sends it through a ``HubSession`` and extracts
the result from the reply.

Session expiry is never retried unless ``auto_login`` is enabled, and even
then only reads are retried. Writes such as ``reboot`` are sent once.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

import httpx

from .auth import Credentials
from .envelope import Action, ActionReply
from .errors import MalformedResponse, NotAuthenticated, SessionExpired
from .session import HubSession, SessionStatus
from .transport import HTTPTransport

# Configure module logger
logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "homehub_client"

DEFAULT_URL = "http://192.168.1.254"

# Object paths on the hub
DEVICE_INFO = "Device/DeviceInfo"
HUB_VERSION = f"{DEVICE_INFO}/ModelName"
SOFTWARE_VERSION = f"{DEVICE_INFO}/SoftwareVersion"
HARDWARE_VERSION = f"{DEVICE_INFO}/HardwareVersion"
SERIAL_NUMBER = f"{DEVICE_INFO}/SerialNumber"
MAINTENANCE_FIRMWARE_VERSION = f"{DEVICE_INFO}/X_BT_MaintenanceFirmwareVersion"
EVENT_LOG = f"{DEVICE_INFO}/VendorLogFiles/VendorLogFile[@uid='1']"
DSL_LINE = "Device/DSL/Lines/Line[@uid='1']"
DATA_PUMP_VERSION = f"{DSL_LINE}/FirmwareVersion"
DSL_CHANNEL = "Device/DSL/Channels/Channel[@uid='1']"
DOWNSTREAM_CURR_RATE = f"{DSL_CHANNEL}/DownstreamCurrRate"
UPSTREAM_CURR_RATE = f"{DSL_CHANNEL}/UpstreamCurrRate"
INTERFACE_TYPE = "Device/Services/BTServices/BroadbandProduct/Type"
WAN_INTERFACE = "Device/IP/Interfaces/Interface[@uid='3']"
WAN_INTERNET_STATUS = f"{WAN_INTERFACE}/Status"
DATA_RECEIVED = f"{WAN_INTERFACE}/Stats/BytesReceived"
DATA_SENT = f"{WAN_INTERFACE}/Stats/BytesSent"
PUBLIC_IP4 = f"{WAN_INTERFACE}/IPv4Addresses/IPv4Address[@uid='1']/IPAddress"
PUBLIC_SUBNET_MASK = f"{WAN_INTERFACE}/IPv4Addresses/IPv4Address[@uid='1']/SubnetMask"
DHCP_POOL = "Device/DHCPv4/Server/Pools/Pool[@uid='1']"
DHCP_AUTHORITATIVE = f"{DHCP_POOL}/X_BT_Authoritative"
DHCP_POOL_START = f"{DHCP_POOL}/MinAddress"
DHCP_POOL_END = f"{DHCP_POOL}/MaxAddress"
DHCP_SUBNET_MASK = f"{DHCP_POOL}/SubnetMask"
HUB_LIGHT = "Device/UserInterface/X_BT_Light"
HUB_LIGHT_BRIGHTNESS = f"{HUB_LIGHT}/Brightness"
HUB_LIGHT_ENABLE = f"{HUB_LIGHT}/Enable"
HUB_LIGHT_STATUS = f"{HUB_LIGHT}/Status"
NTP_LOCAL_TIME = "Device/Time/CurrentLocalTime"
SAMBA = "Device/Services/StorageServices/StorageService[@uid='1']/NetworkServer"
SAMBA_HOST = f"{SAMBA}/NetBIOSName"
SAMBA_IP = f"{SAMBA}/X_BT_IPAddress"
WIFI_SSID = "Device/WiFi/SSIDs/SSID[@uid='1']/SSID"
WIFI_SECURITY_MODE = "Device/WiFi/AccessPoints/AccessPoint[@uid='1']/Security/ModeEnabled"
HOSTS = "Device/Hosts/Hosts"
BANDWIDTH_MONITORING = "Device/Services/BandwidthMonitoring"
REBOOT = "Device"

GET_VALUE = "getValue"
SET_VALUE = "setValue"


@dataclass
class HostDevice:
    """A device known to the hub."""

    id: int
    ip_address: Optional[str] = None
    mac_address: Optional[str] = None
    interface_type: Optional[str] = None
    hostname: Optional[str] = None
    active: bool = False

    @classmethod
    def from_value(cls, value: Dict[str, Any]) -> HostDevice:
        """Create a HostDevice from a ``Host`` object returned by the hub."""
        try:
            host_id = int(value["uid"])
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedResponse(f"Host entry has no uid: {value!r}") from e
        return cls(
            id=host_id,
            ip_address=value.get("IPAddress") or None,
            mac_address=value.get("PhysAddress") or None,
            interface_type=value.get("InterfaceType") or None,
            hostname=value.get("UserHostName") or value.get("HostName") or None,
            active=bool(value.get("Active", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "ip": self.ip_address,
            "mac": self.mac_address,
            "type": self.interface_type,
            "hostname": self.hostname,
            "active": self.active,
        }


@dataclass
class BandwidthUsage:
    """Traffic for one device on one day, from the bandwidth monitor."""

    mac_address: str
    date: str
    downloaded: int
    uploaded: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "mac": self.mac_address,
            "date": self.date,
            "downloaded": self.downloaded,
            "uploaded": self.uploaded,
        }


def parse_bandwidth_csv(text: str) -> List[BandwidthUsage]:
    """Parse the bandwidth monitor CSV, skipping blank and header rows."""
    usage: List[BandwidthUsage] = []
    for row in csv.reader(io.StringIO(text)):
        if len(row) < 4:
            continue
        mac, day, downloaded, uploaded = (cell.strip() for cell in row[:4])
        if not (downloaded.isdigit() and uploaded.isdigit()):
            continue
        usage.append(BandwidthUsage(mac, day, int(downloaded), int(uploaded)))
    return usage


def _as_int(value: Any, xpath: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise MalformedResponse(f"Expected an integer at {xpath}, got {value!r}") from e


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


class Hub:
    """Client for the Home Hub management API.

    Attributes:
        url: Hub base URL.
        username: Hub admin user name.
        auto_login: Log in on demand and retry reads once after expiry.
        session: The underlying protocol session.

    Example:
        >>> hub = Hub("http://192.168.1.254", "admin", "my_password")
        >>> hub.login()
        True
        >>> hub.version()
        'Home Hub 6 Type A'
    """

    def __init__(
        self,
        url: str = DEFAULT_URL,
        username: str = "admin",
        password: str = "",
        *,
        timeout: float = HTTPTransport.DEFAULT_TIMEOUT,
        auto_login: bool = False,
        debug: bool = False,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """Initialize the Home Hub client.

        Args:
            url: Hub base URL.
            username: Hub admin user name.
            password: Hub admin password.
            timeout: HTTP request timeout in seconds.
            auto_login: Log in when needed and retry a read once after the
                session expires.
            debug: Log request and reply bodies.
            transport: Optional httpx transport, used to stub the hub.
        """
        self.url = url
        self.username = username
        self.auto_login = auto_login
        self.session = HubSession(
            Credentials(username, password),
            HTTPTransport(url, timeout=timeout, transport=transport),
        )
        if debug:
            self.enable_debug(True)

    def is_logged_in(self) -> bool:
        """Check whether the client holds a session id."""
        return self.session.is_logged_in()

    def enable_debug(self, enabled: bool) -> None:
        """Log request and reply bodies for every exchange.

        Attaches a stderr handler to the package logger the first time debug
        is enabled, unless the application has configured one already.
        """
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        package_logger.setLevel(logging.DEBUG if enabled else logging.NOTSET)
        if enabled and not package_logger.handlers and not logging.getLogger().handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
            package_logger.addHandler(handler)

    def login(self) -> bool:
        """Log in to the hub.

        Returns:
            True if login succeeded.

        Raises:
            DeviceError: If the hub rejected the credentials.
            TransportError: If the hub could not be reached.
        """
        return self.session.login()

    def logout(self) -> None:
        """Log out from the hub."""
        self.session.logout()

    def _ensure_session(self) -> None:
        if self.session.is_logged_in():
            return
        if not self.auto_login:
            raise NotAuthenticated("Not authenticated - call login() first")
        logger.debug("No session, logging in")
        self.session.login()

    def _call(self, actions: List[Action], retry: bool) -> List[ActionReply]:
        # Login, call and retry run as one step under the session lock
        with self.session.lock:
            self._ensure_session()
            try:
                return self.session.call_many(actions)
            except SessionExpired:
                if not (retry and self.auto_login):
                    raise
                logger.info("Session expired, logging in again")
                self.session.login()
                return self.session.call_many(actions)

    def _read(self, action: Action) -> ActionReply:
        return self._call([action], retry=True)[0]

    def _write(self, action: Action) -> ActionReply:
        reply = self._call([action], retry=False)[0]
        reply.raise_for_error()
        return reply

    def get_value(self, xpath: str) -> Any:
        """Read the value at an object path."""
        return self._read(Action(GET_VALUE, xpath)).value

    def get_values(self, xpaths: List[str]) -> Dict[str, Any]:
        """Read several values in a single request.

        Args:
            xpaths: Object paths to read. An empty list sends nothing.

        Returns:
            Mapping of object path to value.
        """
        if not xpaths:
            return {}
        replies = self._call([Action(GET_VALUE, xpath) for xpath in xpaths], retry=True)
        return {xpath: reply.value for xpath, reply in zip(xpaths, replies)}

    def set_value(self, xpath: str, value: Any) -> None:
        """Write a value at an object path."""
        self._write(Action(SET_VALUE, xpath, {"value": value}))

    def version(self) -> str:
        """Get the hub model name."""
        return str(self.get_value(HUB_VERSION))

    def software_version(self) -> str:
        """Get the installed software version."""
        return str(self.get_value(SOFTWARE_VERSION))

    def hardware_version(self) -> str:
        """Get the hardware version."""
        return str(self.get_value(HARDWARE_VERSION))

    def maintenance_firmware_version(self) -> str:
        """Get the maintenance firmware version."""
        return str(self.get_value(MAINTENANCE_FIRMWARE_VERSION))

    def serial_number(self) -> str:
        """Get the hub serial number."""
        return str(self.get_value(SERIAL_NUMBER))

    def data_pump_version(self) -> str:
        """Get the DSL data pump firmware version."""
        return str(self.get_value(DATA_PUMP_VERSION))

    def broadband_product_type(self) -> str:
        """Get the broadband product the hub is provisioned for."""
        return str(self.get_value(INTERFACE_TYPE))

    def downstream_sync_speed(self) -> int:
        """Get the current downstream sync rate in kbps."""
        return _as_int(self.get_value(DOWNSTREAM_CURR_RATE), DOWNSTREAM_CURR_RATE)

    def upstream_sync_speed(self) -> int:
        """Get the current upstream sync rate in kbps."""
        return _as_int(self.get_value(UPSTREAM_CURR_RATE), UPSTREAM_CURR_RATE)

    def data_received(self) -> int:
        """Get bytes received on the WAN interface."""
        return _as_int(self.get_value(DATA_RECEIVED), DATA_RECEIVED)

    def data_sent(self) -> int:
        """Get bytes sent on the WAN interface."""
        return _as_int(self.get_value(DATA_SENT), DATA_SENT)

    def internet_connection_status(self) -> str:
        """Get the WAN interface status, e.g. ``UP``."""
        return str(self.get_value(WAN_INTERNET_STATUS))

    def public_ip_address(self) -> str:
        """Get the public IPv4 address."""
        return str(self.get_value(PUBLIC_IP4))

    def public_subnet_mask(self) -> str:
        """Get the public IPv4 subnet mask."""
        return str(self.get_value(PUBLIC_SUBNET_MASK))

    def dhcp_authoritative(self) -> bool:
        """Check whether the DHCP server is authoritative."""
        return _as_bool(self.get_value(DHCP_AUTHORITATIVE))

    def dhcp_pool_start(self) -> str:
        """Get the first address of the DHCP pool."""
        return str(self.get_value(DHCP_POOL_START))

    def dhcp_pool_end(self) -> str:
        """Get the last address of the DHCP pool."""
        return str(self.get_value(DHCP_POOL_END))

    def dhcp_subnet_mask(self) -> str:
        """Get the DHCP pool subnet mask."""
        return str(self.get_value(DHCP_SUBNET_MASK))

    def light_brightness(self) -> int:
        """Get the hub light brightness as a percentage."""
        return _as_int(self.get_value(HUB_LIGHT_BRIGHTNESS), HUB_LIGHT_BRIGHTNESS)

    def light_status(self) -> str:
        """Get the hub light status, e.g. ``ON`` or ``OFF``."""
        return str(self.get_value(HUB_LIGHT_STATUS))

    def local_time(self) -> str:
        """Get the hub's local time as an ISO 8601 string."""
        return str(self.get_value(NTP_LOCAL_TIME))

    def samba_host(self) -> str:
        """Get the NetBIOS names the hub's file server answers to."""
        return str(self.get_value(SAMBA_HOST))

    def samba_ip(self) -> str:
        """Get the file server IP address."""
        return str(self.get_value(SAMBA_IP))

    def wifi_ssid(self) -> str:
        """Get the 2.4GHz Wi-Fi network name."""
        return str(self.get_value(WIFI_SSID))

    def wifi_security_mode(self) -> str:
        """Get the 2.4GHz Wi-Fi security mode."""
        return str(self.get_value(WIFI_SECURITY_MODE))

    def connected_devices(self) -> List[HostDevice]:
        """Get devices currently connected to the hub.

        Returns:
            Active hosts, ordered by id.
        """
        value = self.get_value(HOSTS)
        if not isinstance(value, list):
            raise MalformedResponse(f"Expected a host list at {HOSTS}")
        hosts = [HostDevice.from_value(entry) for entry in value]
        return sorted((h for h in hosts if h.active), key=lambda h: h.id)

    def device_info(self, host_id: int) -> HostDevice:
        """Get details of one host by id.

        Args:
            host_id: Host id as reported by ``connected_devices``.
        """
        xpath = f"{HOSTS}/Host[@uid='{host_id}']"
        value = self.get_value(xpath)
        if not isinstance(value, dict):
            raise MalformedResponse(f"Expected a host object at {xpath}")
        return HostDevice.from_value(value)

    def event_log(self) -> str:
        """Download the hub event log."""
        reply = self._read(Action("getVendorLogDownloadURI", EVENT_LOG))
        return self.session.download(reply.parameters.get("uri"))

    def bandwidth_monitor(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[BandwidthUsage]:
        """Get per-device traffic from the bandwidth monitor.

        Args:
            start_date: First day to report (default: today).
            end_date: Last day to report (default: start_date).
        """
        start = start_date or date.today()
        end = end_date or start
        action = Action(
            "uploadBMStatisticsFile",
            BANDWIDTH_MONITORING,
            {"StartDate": start.strftime("%Y%m%d"), "EndDate": end.strftime("%Y%m%d")},
        )
        reply = self._read(action)
        return parse_bandwidth_csv(self.session.download(reply.parameters.get("uri")))

    def set_light_brightness(self, brightness: int) -> None:
        """Set the hub light brightness.

        Args:
            brightness: Brightness percentage, 0 to 100.

        Raises:
            ValueError: If brightness is out of range.
        """
        if not 0 <= brightness <= 100:
            raise ValueError(f"Brightness must be between 0 and 100, got {brightness}")
        self.set_value(HUB_LIGHT_BRIGHTNESS, brightness)

    def set_light_enabled(self, enabled: bool) -> None:
        """Turn the hub light on or off."""
        self.set_value(HUB_LIGHT_ENABLE, enabled)

    def reboot(self) -> None:
        """Reboot the hub.

        The hub drops the session while restarting, so the local session is
        invalidated once the request has been accepted.
        """
        with self.session.lock:
            self._write(Action("reboot", REBOOT, {"source": "GUI"}))
            self.session.state.invalidate()
        logger.info("Hub reboot initiated")

    def get_status(self) -> Dict[str, Any]:
        """Get a summary of the hub in a single request.

        Returns:
            Dictionary with model, firmware and connection details.
        """
        fields = {
            "model": HUB_VERSION,
            "software_version": SOFTWARE_VERSION,
            "internet_status": WAN_INTERNET_STATUS,
            "public_ip": PUBLIC_IP4,
            "downstream_kbps": DOWNSTREAM_CURR_RATE,
            "upstream_kbps": UPSTREAM_CURR_RATE,
        }
        values = self.get_values(list(fields.values()))
        return {name: values[xpath] for name, xpath in fields.items()}

    def get_diagnostics(self) -> Dict[str, Any]:
        """Get diagnostic information about the client session.

        Returns:
            Dictionary with connection and session details. No request is sent.
        """
        status = self.session.status
        return {
            "url": self.url,
            "username": self.username,
            "status": status.value,
            "authenticated": status is SessionStatus.LOGGED_IN,
            "request_count": self.session.state.request_count,
            "auto_login": self.auto_login,
        }
