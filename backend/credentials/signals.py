from django.db.models.signals import post_save
from django.dispatch import receiver

from .domain_exam import ResultStatus, StudentResult
from .issuance import mark_credentials_stale


@receiver(post_save, sender=StudentResult)
def result_post_save(sender, instance: StudentResult, created, raw=False, **kwargs):
    """Flag issued credentials when a published result is corrected.

    Publishing, un-publishing or re-scoring a published result changes what
    an already issued credential should say. The credential keeps verifying;
    it is marked stale until an administrator reissues it.
    """
    if raw:
        return
    loaded_status, loaded_total = getattr(instance, '_loaded_state', (None, None))
    was_published = loaded_status == ResultStatus.PUBLISHED
    is_published = instance.status == ResultStatus.PUBLISHED
    instance._loaded_state = (instance.status, instance.total_score)

    if was_published != is_published:
        note = f"result {instance.pk} {'published' if is_published else 'unpublished'}"
    elif is_published and loaded_total != instance.total_score:
        note = f"result {instance.pk} re-scored {loaded_total} -> {instance.total_score}"
    else:
        return
    mark_credentials_stale(instance.student_id, instance.exam_year_id, note=note)
