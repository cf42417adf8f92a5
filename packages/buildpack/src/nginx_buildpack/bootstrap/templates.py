from __future__ import annotations

from string import Template

from nginx_buildpack.resolve import PackageSpec

# `$$` is a literal `$` for string.Template; the generated files are shell
# and nginx syntax, both of which use `$` heavily.

_LAUNCH_SCRIPT = Template(
    """\
#!/usr/bin/env bash
set -eo pipefail

# Runtime settings are read again so the rendered config can use them.
if [ -f ${config_file} ]; then
  set -a
  . ./${config_file}
  set +a
fi

# Replace $${NAME} with the value of environment variable NAME.
# Placeholders naming unset variables are left untouched.
render_template() {
  local line out name
  while IFS= read -r line || [ -n "$$line" ]; do
    out=""
    while [[ $$line =~ \\$$\\{([A-Za-z_][A-Za-z0-9_]*)\\} ]]; do
      name=$${BASH_REMATCH[1]}
      out+=$${line%%"$${BASH_REMATCH[0]}"*}$${!name-$${BASH_REMATCH[0]}}
      line=$${line#*"$${BASH_REMATCH[0]}"}
    done
    printf '%s\\n' "$$out$$line"
  done < "$$1"
}

if [ -f ${template} ]; then
  render_template ${template} > ${conf}
fi

mkdir -p ${log_dir}
touch ${access_log} ${error_log}

# Stream logs to stdout until the supervised process exits.
tail --pid=$$$$ -n 0 -qF ${access_log} ${error_log} &

exec ${binary} -p . -c ${conf} -g 'daemon off;'
"""
)

_PROCFILE = Template("${process_type}: bin/${launch_script}\n")

_PROFILE_D = Template('export PATH="$$PATH:$$HOME/vendor/${name}/bin"\n')

_CONF_TEMPLATE = Template(
    """\
worker_processes auto;
error_log ${error_log};
pid ${log_dir}/${name}.pid;

events {
  worker_connections 1024;
}

http {
  access_log ${access_log};
  server_tokens off;

  server {
    listen $${PORT};
    root public;

    location / {
      try_files $$uri $$uri/ =404;
    }
  }
}
"""
)


def _values(spec: PackageSpec) -> dict[str, str]:
    log_dir = f"logs/{spec.name}"
    return {
        "name": spec.name,
        "config_file": spec.config_file,
        "template": f"config/{spec.name}.conf.template",
        "conf": f"config/{spec.name}.conf",
        "log_dir": log_dir,
        "access_log": f"{log_dir}/access.log",
        "error_log": f"{log_dir}/error.log",
        "binary": f"vendor/{spec.name}/bin/{spec.binary}",
        "process_type": spec.process_type,
        "launch_script": spec.launch_script,
    }


def render_launch_script(spec: PackageSpec) -> str:
    return _LAUNCH_SCRIPT.substitute(_values(spec))


def render_procfile(spec: PackageSpec) -> str:
    return _PROCFILE.substitute(_values(spec))


def render_profile_d(spec: PackageSpec) -> str:
    return _PROFILE_D.substitute(_values(spec))


def render_conf_template(spec: PackageSpec) -> str:
    return _CONF_TEMPLATE.substitute(_values(spec))


def render_release(spec: PackageSpec) -> str:
    """Default process types, as consumed by the platform's release step."""
    return (
        "---\n"
        "default_process_types:\n"
        f"  {spec.process_type}: bin/{spec.launch_script}\n"
    )
