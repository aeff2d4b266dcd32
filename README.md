# fxconfig

A library for preparing namespace-management transactions for a Fabric-X
network: loading and validating client configuration, parsing signature
policy expressions, building namespace policies, creating namespace
transactions, endorsing them and merging endorsements gathered from several
organizations.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Configuration

`fxconfig.load.load(*options)` builds a `fxconfig.config.Config` from these
sources, lowest precedence first:

1. built-in defaults: connection timeouts of `30s`, channel `mychannel`,
   logging level `error`, notification waiting timeout `30s`;
2. the user file `~/.fxconfig/config.yaml`, if it exists;
3. the project file `.fxconfig/config.yaml` in the current directory, if it
   exists, merged over the user file;
4. an explicit file given with `with_config_file(path)`, which replaces the
   user and project files rather than merging with them;
5. non-empty environment variables with the `FXCONFIG_` prefix, the dotted
   key upper-cased with dots turned into underscores, such as
   `FXCONFIG_ORDERER_ADDRESS` or `FXCONFIG_ORDERER_CONNECTIONTIMEOUT`
   (the per-service `tls` sections are read from files and overrides only);
6. overrides given with `with_override(key, value)`, where `key` is dotted,
   such as `"orderer.connectionTimeout"`.

Keys are matched case-insensitively. Durations are written like `30s`,
`1h30m` or `250ms` (see `fxconfig.config.parse_duration`) and become
`datetime.timedelta` values. A missing explicit file, malformed YAML or an
unparsable value raises `fxconfig.load.ConfigLoadError`.

```python
from datetime import timedelta
from fxconfig.load import load, with_config_file, with_override

cfg = load(
    with_config_file("config.yaml"),
    with_override("msp.localMspID", "Org1MSP"),
    with_override("orderer.connectionTimeout", timedelta(seconds=20)),
)
print(cfg.orderer.address, cfg.orderer.connection_timeout)
```

A sample file:

```yaml
logging:
  level: error

msp:
  localMspID: Org1MSP
  configPath: /path/to/msp

tls:
  enabled: true
  rootCerts:
    - /path/to/ca.pem

orderer:
  address: orderer.example.com:7050
  channel: mychannel
  connectionTimeout: 30s
  tls:
    clientCert: /path/to/client.crt
    clientKey: /path/to/client.key

queries:
  address: query.example.com:7001

notifications:
  address: notify.example.com:7002
  waitingTimeout: 15s
```

After loading, `Config.resolve_tls()` has been applied: each service's `tls`
is the top-level `tls` with the service's own fields laid over it
(`TLSConfig.inherit_from`), and every `enabled` flag is made explicit,
defaulting to `False`.

## Validation

`fxconfig.validation.new_validation_context()` returns a `Context` with a
`PolicyDSLChecker`, an `OSFileChecker` and an `OSDirectoryChecker`. The path
checkers reject empty paths and paths containing `..`, and raise
`ValidationError` when the path is missing or of the wrong kind.

Configuration sections validate themselves against a context and raise
`fxconfig.config.ConfigError`:

- `MSPConfig.validate`: the MSP ID must not be blank and the config path
  must be a directory;
- `EndpointServiceConfig.validate` (and the queries and notifications
  sections): the address must be `host:port`, the connection timeout non-zero,
  and the TLS section valid;
- `OrdererConfig.validate`: additionally, the channel must not be blank;
- `TLSConfig.validate`: when enabled, root certificates are required and must
  exist; if a client certificate or key is given, both must exist and load as
  a matching pair.

```python
from fxconfig.validation import new_validation_context

vctx = new_validation_context()
cfg.orderer.validate(vctx)
```

`fxconfig.provider.Provider(factory, cfg, validation_context)` validates a
section and calls the factory with it on the first `get()`, once only and
thread-safely. The result, or the exception raised, is cached for every later
call. `Provider.validate()` checks the section without building anything.

## Policies

`fxconfig.policydsl.from_string` parses expressions built from `AND`, `OR`
and `OutOf` over principals such as `'Org1MSP.member'` (roles: member, admin,
client, peer, orderer) and raises `PolicyParseError` on bad input.
`SignaturePolicy.to_bytes()` gives its binary encoding.

`fxconfig.policy` builds a `NamespacePolicy`:

- `create_msp_policy("OR('Org1MSP.member', 'Org2MSP.member')")` for an MSP
  rule;
- `create_threshold_policy(path)` for an ECDSA threshold rule, from a PEM file
  holding an ECDSA public key or a certificate with one;
  `get_pub_key_from_pem_data(data)` does the same for data in memory.

Both raise `PolicyError` when no policy can be built.

## Transactions

```python
from fxconfig.policy import create_msp_policy
from fxconfig.namespace import create_namespaces_tx
from fxconfig.endorse import endorse, generate_tx_id
from fxconfig.merge import merge
from fxconfig.version import validate_version

policy = create_msp_policy("AND('Org1MSP.member', 'Org2MSP.member')")
version = validate_version(-1)
tx = create_namespaces_tx(policy, "my_namespace", version)

tx_id = generate_tx_id()
endorsed_by_org1 = endorse(org1_signer, tx_id, tx)
endorsed_by_org2 = endorse(org2_signer, tx_id, tx)
merged = merge([endorsed_by_org1, endorsed_by_org2])
```

- `create_namespaces_tx` writes the policy for the namespace ID to the
  `_meta` namespace. Version `-1` creates a namespace; `0` or more updates that
  version. `validate_version` raises `ValueError` below `-1`.
- `endorse` returns a copy of the transaction with one endorsement added per
  namespace, signing `TxNamespace.asn1_marshal(tx_id)`. Signers implement the
  `fxconfig.endorse.SigningIdentity` protocol: `sign(message)` and
  `serialize()`, the latter returning an encoded `fxconfig.protos.Identity`.
- `generate_tx_id` returns the hex SHA-256 of a random 24-byte nonce.
- `merge` needs at least two transactions with identical namespaces and at
  least one endorsement per namespace; it keeps one endorsement per MSP ID and
  sorts them by MSP ID. It raises `MergeError` otherwise.

The message classes (`Tx`, `TxNamespace`, `ReadWrite`, `Endorsements`,
`EndorsementWithIdentity`, `Identity`, `NamespacePolicy`, `ThresholdRule`)
live in `fxconfig.protos`.

## What this package does not do

- It has no command-line program.
- It does not connect to orderer, query or notification services: it cannot
  submit transactions, wait for their status or list installed namespaces.
- It does not load signing identities from an MSP directory; callers supply
  their own signer.
- It does not read or write transactions to files.