"""
Command-line interface for loadscope.

The CLI is built using the Click framework.

Examples
--------
Poll a simulated lift for 30 seconds:
```bash
$ loadscope simulate &
$ loadscope monitor -a 127.0.0.1:8502 -d 30 --skip-metadata-check
```

Poll the in-process mock and save the session:
```bash
$ loadscope monitor -a mock -m metadata.json --save -p crane-7
```

CLI Tree
--------

```
$ loadscope --tree
cli
└── config
    └── init
    └── list
    └── show
└── monitor
└── ports
└── simulate
```
"""

from .base import cli, tree_option

__all__ = ["cli", "tree_option"]
