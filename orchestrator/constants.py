"""Defaults for a local development stack."""

from types import MappingProxyType

DEFAULT_SETTINGS = MappingProxyType({
    "POSTGRES_PORT": "5432",
    "POSTGRES_DB": "dev",
    "POSTGRES_USER": "dev",
    "POSTGRES_PASSWORD": "dev",
    "IPFS_PORT": "5001",
    "ETHEREUM_PORT": "8545",
    "ETHEREUM_NETWORK": "hardhat",
    "GRAPH_NODE_GRAPHQL_PORT": "8000",
    "GRAPH_NODE_STATUS_PORT": "8020",
})

DEFAULT_VERSION_LABEL = "v0.0.1"
GRAPH_CLI_VERSION = "0.29.1"
GRAPH_NODE_REPOSITORY = "https://github.com/graphprotocol/graph-node"
POSTGRES_IMAGE = "postgres:14"

# Poll interval between readiness probes, in seconds.
READINESS_INTERVAL = 1.0
# "Very long" rather than infinite. Pass timeout=None to the poller for no deadline.
DEFAULT_READINESS_TIMEOUT = 24 * 60 * 60.0
PROBE_REQUEST_TIMEOUT = 2.0
