"""Text templates for the files written into a new project."""

import json
import os
from pathlib import PurePosixPath

from pynapi.runtime import HEADERS_DIR_GLOB, RuntimeRelease

SOURCE_FILE = PurePosixPath("src") / "module.c"
CMAKE_FILE = "CMakeLists.txt"
MANIFEST_FILE = "package.json"
GIT_IGNORE_FILE = ".gitignore"
MANIFEST_VERSION = "0.0.0"


def render(template: str) -> str:
    """Normalize an indented, already-interpolated template.

    Leading blank lines and one trailing blank line are dropped, the
    indentation of the first remaining line is removed from every line, and
    lines are joined with the platform line separator.
    """
    lines = template.split("\n")
    while lines and not lines[0].strip():
        lines.pop(0)
    if lines and not lines[-1].strip():
        lines.pop()
    if not lines:
        return ""
    first = lines[0]
    depth = len(first) - len(first.lstrip(" "))
    trimmed = []
    for line in lines:
        indent = len(line) - len(line.lstrip(" "))
        trimmed.append(line[min(indent, depth):].rstrip("\r"))
    return os.linesep.join(trimmed)


def render_cmakelists(
    name: str,
    cmake_version: str,
    release: RuntimeRelease,
    napi_version: int,
    c_standard: str,
    libs_dir: str,
) -> str:
    include_dir = f"node-{release.version}/include/node"
    return render(f"""
        cmake_minimum_required(VERSION {cmake_version})
        project({name} C)

        set(CMAKE_C_STANDARD {c_standard})

        add_library(${{PROJECT_NAME}} SHARED "{SOURCE_FILE}")
        set_target_properties(${{PROJECT_NAME}} PROPERTIES PREFIX "" SUFFIX ".node")

        # BEGIN N-API specific
        target_include_directories(${{PROJECT_NAME}} PRIVATE {include_dir})
        if(WIN32)
            find_library(NODE_LIB node PATHS ${{CMAKE_SOURCE_DIR}}/{libs_dir} NO_DEFAULT_PATH)
            target_link_libraries(${{PROJECT_NAME}} ${{NODE_LIB}})
        endif()
        if(APPLE)
            set_target_properties(${{PROJECT_NAME}} PROPERTIES LINK_FLAGS "-undefined dynamic_lookup")
        endif()
        target_compile_definitions(${{PROJECT_NAME}} PRIVATE NAPI_VERSION={napi_version})
        # END N-API specific
        """)


def render_source(name: str) -> str:
    return render(f"""
        #include <stdlib.h>
        #include <node_api.h>
        #include <assert.h>

        napi_value Init(napi_env env, napi_value exports) {{
            napi_value str;
            napi_status status = napi_create_string_utf8(env, "A project named {name} is growing here.", NAPI_AUTO_LENGTH, &str);
            assert(status == napi_ok);
            return str;
        }}

        NAPI_MODULE(NODE_GYP_MODULE_NAME, Init)
        """)


def render_manifest(name: str, build_dir: str, tool_version: str) -> str:
    manifest = {
        "name": name,
        "version": MANIFEST_VERSION,
        "main": str(PurePosixPath(build_dir) / f"{name}.node"),
        "config": {"pynapi": f">={tool_version}"},
        "scripts": {
            "install": "pynapi init",
            "build": "pynapi build",
            "test": "pynapi test",
            "clean": "pynapi clean",
        },
    }
    return render(json.dumps(manifest, indent=2))


def render_gitignore(build_dir: str, libs_dir: str) -> str:
    return render(f"""
        .vscode
        .idea
        {build_dir}/
        {HEADERS_DIR_GLOB}/
        {libs_dir}/
        """)
