# lims_core/common/tests/helpers.py


def reload(instance):
    """
    Fresh copy from the store, with the load snapshot the pipeline needs.
    Goes through the base manager so tombstoned rows load too.
    """
    return type(instance)._base_manager.get(pk=instance.pk)
