# kptcond

`kptcond` is a library for writing kpt functions that specialize a
package and record their progress in the Kptfile's `status.conditions`.
You describe three things:

- the resource kind the function acts *for*,
- the child kinds it *owns*,
- the kinds it *watches*.

From that, the library builds an inventory of the matching conditions
and resources in the package. It works out which child resources and
conditions have to be created, updated or deleted. When every owned and
watched dependency of a *for* resource is ready, it calls your update
callback and writes the objects it returns back into the resource list.

## Installation

```
pip install kptcond
```

To run the test suite, install with the `test` extra:

```
pip install "kptcond[test]"
pytest
```

## Building blocks

- `kptcond.kubeobject.KubeObject` holds a Kubernetes object as
  round-trip YAML. It offers `parse`, `from_dict`, `to_yaml`, `to_dict`,
  `copy`, annotation access (`get_annotations`, `get_annotation`,
  `set_annotation`), nested-field access (`nested`, `set_nested_field`),
  `is_gvk` and `same_identity`.
- `kptcond.kubeobject.set_nested_field_keep_formatting` replaces a field
  (or, with no field path, the whole object) and keeps the comments and
  key order of the original document where it can. A value of `None`
  removes the field.
- `kptcond.kubeobject.TypedKubeObject` pairs a `KubeObject` with a
  dataclass type: `to_value`, `set_spec`, `set_status` and
  `set_from_typed`.
- `kptcond.lists.filter_by_gvk` and `get_singleton` select objects by
  apiVersion and kind.
- `kptcond.objectref` has `ObjectReference`, `Condition`,
  `ConditionStatus` and the mapping between references and condition
  types: `get_condition_type` turns `a.a/a`, `b`, `c` into `a.a/a.b.c`,
  and `get_gvkn_from_condition_type` parses such a string back.
- `kptcond.kptfile.KptFile` reads and writes readiness gates and
  conditions on a Kptfile object, and reports readiness with `is_ready`.
- `kptcond.resourcelist.get_resource_list` turns a mapping of file
  paths to YAML text into a `ResourceList`. It reads only `*.yaml`,
  `*.yml` and `Kptfile` files. Each object is annotated with
  `internal.config.kubernetes.io/path`.
- `kptcond.specialization` builds the `nephio.org.Specializer.specialize`
  condition in its `initialize`, `failed`, `not_ready` and `ready` states.

## Running a specializer

```python
from kptcond.config import Config, ResourceKind
from kptcond.objectref import ObjectReference
from kptcond.resourcelist import get_resource_list
from kptcond.sdk import new

KPTFILE = """\
apiVersion: kpt.dev/v1
kind: Kptfile
metadata:
  name: pkg
"""

NF = """\
apiVersion: example.org/v1
kind: NFDeployment
metadata:
  name: nf
spec: {}
"""


def update(for_obj, objs):
    # for_obj is the for resource (or None); objs are its owned and watched objects.
    # Return the objects to write back into the package.
    return [for_obj]


rl = get_resource_list({"Kptfile": KPTFILE, "nf.yaml": NF})
sdk = new(rl, Config(
    for_ref=ObjectReference(api_version="example.org/v1", kind="NFDeployment"),
    owns={
        ObjectReference(api_version="example.org/v1", kind="Interface"):
            ResourceKind.CHILD_REMOTE,
    },
    update_resource_fn=update,
    root=True,
))
sdk.run()
print(rl.results)
```

`Config` fields:

- `for_ref`: the GVK the function acts for. It must have an apiVersion
  and kind and may not be a wildcard.
- `owns`: child GVKs mapped to a `ResourceKind` (`CHILD_REMOTE`,
  `CHILD_REMOTE_CONDITION`, `CHILD_LOCAL`, `CHILD_INITIAL`). A wildcard
  (`*`/`*`) is allowed only with `CHILD_INITIAL`.
- `watch`: watched GVKs mapped to a callback, or `None`. A callback that
  raises marks the function as not ready.
- `populate_own_resources_fn`: returns the children a *for* object
  should have.
- `update_resource_fn`: required. `update_resource_nop` returns nothing.
- `root`: when true, the specialization readiness gate and condition are
  kept on the Kptfile.

`new` raises `kptcond.resources.InventoryError`, a `ValueError`, if the
configuration is invalid. Examples are a missing *for* reference, a
wildcard where none is allowed, a GVK registered twice, or no update
function.

`run` returns `True`. If the list is empty, it only records an info
result. It raises `ValueError` if the package has no root Kptfile. It
also raises `ValueError` if the readiness gate and condition cannot be
set. Other problems found while it runs are not raised. They go into
`ResourceList.results` and into the Kptfile conditions.

Set the annotation `specializer.nephio.org/debug` on a *for* resource to
log the inventory and each diff action through the `logging` module.

## What this package does not do

There is no command-line program. The package does not read a
ResourceList from standard input or write one to standard output. It
does not run as a function container either. You load the resources,
call `new(...).run()`, and serialize the results yourself, for example
with `KubeObject.to_yaml`.