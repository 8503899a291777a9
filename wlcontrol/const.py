"""Constants for the wlcontrol backend."""

# D-Bus daemon
DBUS_SERVICE = "org.freedesktop.DBus"
DBUS_PATH = "/org/freedesktop/DBus"
DBUS_INTERFACE = "org.freedesktop.DBus"
DBUS_PROPERTIES_INTERFACE = "org.freedesktop.DBus.Properties"
DBUS_OBJECT_MANAGER_INTERFACE = "org.freedesktop.DBus.ObjectManager"

# Error names reported when a service has no owner on the bus
DBUS_ERROR_SERVICE_UNKNOWN = "org.freedesktop.DBus.Error.ServiceUnknown"
DBUS_ERROR_NAME_HAS_NO_OWNER = "org.freedesktop.DBus.Error.NameHasNoOwner"
DBUS_ERROR_NO_REPLY = "org.freedesktop.DBus.Error.NoReply"

# iwd
IWD_SERVICE = "net.connman.iwd"
IWD_ROOT_PATH = "/net/connman/iwd"
IWD_ADAPTER_INTERFACE = "net.connman.iwd.Adapter"
IWD_DEVICE_INTERFACE = "net.connman.iwd.Device"
IWD_STATION_INTERFACE = "net.connman.iwd.Station"
IWD_NETWORK_INTERFACE = "net.connman.iwd.Network"
IWD_KNOWN_NETWORK_INTERFACE = "net.connman.iwd.KnownNetwork"
IWD_AGENT_MANAGER_INTERFACE = "net.connman.iwd.AgentManager"
IWD_AGENT_INTERFACE = "net.connman.iwd.Agent"
IWD_AGENT_CANCELED_ERROR = "net.connman.iwd.Agent.Error.Canceled"

# BlueZ
BLUEZ_SERVICE = "org.bluez"
BLUEZ_ROOT_PATH = "/org/bluez"
BLUEZ_ADAPTER_INTERFACE = "org.bluez.Adapter1"
BLUEZ_DEVICE_INTERFACE = "org.bluez.Device1"
BLUEZ_BATTERY_INTERFACE = "org.bluez.Battery1"
BLUEZ_AGENT_MANAGER_INTERFACE = "org.bluez.AgentManager1"
BLUEZ_AGENT_INTERFACE = "org.bluez.Agent1"
BLUEZ_AGENT_REJECTED_ERROR = "org.bluez.Error.Rejected"
BLUEZ_AGENT_CANCELED_ERROR = "org.bluez.Error.Canceled"
# Lets BlueZ pick any pairing method, including PIN and passkey entry
BLUEZ_AGENT_CAPABILITY = "KeyboardDisplay"

# Defaults
DEFAULT_AGENT_PATH = "/org/wlcontrol/Agent"
DEFAULT_PAIRING_AGENT_PATH = "/org/wlcontrol/PairingAgent"
DEFAULT_CONNECT_TIMEOUT = 60
DEFAULT_DISCOVERY_TIMEOUT = 30
DEFAULT_CREDENTIAL_TIMEOUT = 120

# Config keys
CONF_AGENT_PATH = "agent_path"
CONF_PAIRING_AGENT_PATH = "pairing_agent_path"
CONF_CONNECT_TIMEOUT = "connect_timeout"
CONF_DISCOVERY_TIMEOUT = "discovery_timeout"
CONF_CREDENTIAL_TIMEOUT = "credential_timeout"

# Command payload keys
ATTR_COMMAND = "command"
ATTR_TAG = "tag"
ATTR_NETWORK = "network"
ATTR_DEVICE = "device"
ATTR_POWERED = "powered"
ATTR_ENABLED = "enabled"
ATTR_PASSPHRASE = "passphrase"
ATTR_ALIAS = "alias"
ATTR_TRUSTED = "trusted"
ATTR_DISCOVERABLE = "discoverable"
ATTR_ACCEPT = "accept"
ATTR_PIN = "pin"
ATTR_PASSKEY = "passkey"
