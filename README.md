# buildpack-lifecycle

Tools for running an application that a buildpack has staged into a droplet.
The package prepares the runtime environment of the app, sources its profile
scripts and then hands control to the start command. It also holds the models
that describe a staging result.

## Installation

    pip install buildpack-lifecycle

For running the tests:

    pip install "buildpack-lifecycle[test]"
    pytest

## Commands

### buildpack-launcher

Starts a staged application:

    buildpack-launcher <app-directory> <start-command> <metadata>

All three arguments must be present; with fewer, the launcher prints a usage
message and exits with status 1. The `metadata` argument is not used.

- `app-directory` is made absolute and becomes `HOME` for the app.
- `start-command` is run; if it is empty, the `start_command` from
  `staging_info.yml` in the current directory is used instead. A missing
  `staging_info.yml` counts as empty. If there is still no command, the
  launcher exits with status 1. A `staging_info.yml` that is not valid YAML
  also gives status 1 ("Invalid staging info").
- On POSIX systems, an `entrypoint_prefix` under `config` in
  `staging_info.yml` replaces the default `bash -c` entry point.

Before the command runs, the environment is prepared:

- `HOME` is the app directory; `TMPDIR` and `DEPS_DIR` are the `tmp` and
  `deps` directories next to it.
- If `VCAP_APPLICATION` holds a JSON object, it gets `host` set to `0.0.0.0`,
  `instance_id` from `INSTANCE_GUID`, and `port` and `instance_index` from
  `PORT` and `INSTANCE_INDEX` when these are whole numbers.
- If `VCAP_PLATFORM_OPTIONS` names a `credhub-uri` and `VCAP_SERVICES`
  contains `"credhub-ref"` entries, `VCAP_SERVICES` is sent to CredHub's
  `/api/v1/interpolate` endpoint using the instance certificate and key
  (`CF_INSTANCE_CERT`, `CF_INSTANCE_KEY`) and the `*.crt` files found in
  `CF_SYSTEM_CERT_PATH` as CA certificates. Setting
  `CREDHUB_SKIP_INTERPOLATION` turns this off. `VCAP_PLATFORM_OPTIONS` is
  removed afterwards.
- `DATABASE_URL` is set from the first MySQL or PostgreSQL `uri` credential
  in `VCAP_SERVICES` (`mysql://` becomes `mysql2://`, `postgresql://` becomes
  `postgres://`).

The launcher exits with status 3 when the environment cannot be prepared, for
example when the platform options are not valid JSON or CredHub
interpolation fails.

On POSIX systems, `../profile.d/*`, `.profile.d/*` and `.profile` in the app
directory are sourced, in that order, and `/bin/bash` replaces the launcher
process. On Windows, `..\profile.d\*`, `.profile.d\*` and `.profile.bat` are
run through `cmd`, the environment they leave behind is collected, and the
command is run as a child process in the app directory; the launcher returns
its exit code. `entrypoint_prefix` is ignored on Windows.

### buildpack-shell

Opens a shell, or runs a command, inside the environment of a staged app
(POSIX only, it uses `/bin/bash`):

    buildpack-shell [app-directory] [command]

Without an app directory, `$HOME/app` is used. Without a command, `bash` is
started. The environment is prepared as for the launcher. Profile scripts
from `../profile.d` and `.profile.d` are sourced; `.profile` is not. If the
app directory does not exist, it exits with status 1.

### buildpack-getenv

Writes the current environment to a file as a JSON list of `NAME=value`
strings, leaving out entries with an empty name:

    buildpack-getenv -output env.json

`--output` is accepted as well. It exits with status 1 when no output file is
given or the file cannot be written.

## Library use

Staging results and exit codes (`buildpack_lifecycle.models`):

```python
from buildpack_lifecycle.models import (
    LifecycleMetadata,
    exit_code_from_error,
    new_staging_result,
)

result = new_staging_result({"web": "bundle exec rackup"}, LifecycleMetadata())
print(result.to_json())

exit_code_from_error(RuntimeError("Failed to compile droplet"))  # 223
```

Other models there are `BuildpackMetadata`, `BuildpackConfig`, `Sidecar`,
`Process`, `StagingResult` and `ExecutionMetadata`, and
`update_staging_result` returns a copy of a result with new lifecycle
metadata.

Database URLs from service credentials (`buildpack_lifecycle.databaseuri`):

```python
from buildpack_lifecycle.databaseuri import credentials, database_uri

uris = credentials(b'{"db":[{"credentials":{"uri":"mysql://db.example.com/app"}}]}')
database_uri(uris)  # "mysql2://db.example.com/app"
```

Platform options (`buildpack_lifecycle.platformoptions`):

```python
from buildpack_lifecycle.platformoptions import get

options = get('{"credhub-uri":"https://credhub.example.com"}')
options.credhub_uri  # "https://credhub.example.com"
get("")              # None
```

Preparing an environment mapping for an app directory
(`buildpack_lifecycle.env`); it raises `EnvError` where the launcher would
exit with status 3:

```python
import os
from buildpack_lifecycle.env import calc_env

environ = dict(os.environ)
calc_env(environ, "/home/vcap/app")
```

CredHub interpolation on its own is available through
`buildpack_lifecycle.credhub.Credhub(environ).interpolate_service_refs(uri)`,
which raises `CredhubError` on failure. On Windows,
`buildpack_lifecycle.profile.profile_env` runs the profile scripts and returns
the resulting `NAME=value` list; elsewhere it raises `ProfileError`.

## What this package does not do

It does not stage applications: there is no command that detects, supplies,
compiles or releases with buildpacks, nor one that builds a droplet. The
staging result models and exit codes are provided for describing such a
result, not for producing one.