# control/catalog/forms.py
import re

from django import forms

_CAMEL_RE = re.compile(r'(?<=[a-z0-9])([A-Z])')


def to_snake(key: str) -> str:
    """'parentId' → 'parent_id' (이미 snake_case 면 그대로)"""
    return _CAMEL_RE.sub(r'_\1', key).lower() if isinstance(key, str) else key


def snake_keys(data: dict) -> dict:
    """JSON 본문의 camelCase 키를 snake_case 로 (1단계만). 둘 다 오면 snake_case 우선."""
    data = data or {}
    out = {}
    for k, v in data.items():
        sk = to_snake(k)
        if sk != k and sk in data:
            continue
        out[sk] = v
    return out


class JsonFormMixin:
    """JSON 에서 온 값(bool/None)을 Form 이 다루는 형태로 맞춰 둔다."""

    def __init__(self, data=None, *args, **kwargs):
        if data is not None:
            data = {k: v for k, v in snake_keys(data).items() if v is not None or k in self.nullable}
        super().__init__(data, *args, **kwargs)

    nullable = ()


class ServiceCreateForm(JsonFormMixin, forms.Form):
    name = forms.CharField(max_length=200, strip=True)
    description = forms.CharField(required=False, strip=True, empty_value=None)
    parent_id = forms.UUIDField(required=False)
    image = forms.URLField(required=False, max_length=2000, assume_scheme="https", empty_value=None)
    is_active = forms.NullBooleanField(required=False)

    def clean_is_active(self):
        val = self.cleaned_data.get('is_active')
        return True if val is None else val


class ServiceUpdateForm(JsonFormMixin, forms.Form):
    """부분 수정: 값이 온 필드만 반영 (parent_id 는 null 로 루트 이동 가능)"""
    nullable = ('parent_id', 'description', 'image')

    name = forms.CharField(max_length=200, required=False, strip=True)
    description = forms.CharField(required=False, strip=True, empty_value=None)
    parent_id = forms.UUIDField(required=False)
    image = forms.URLField(required=False, max_length=2000, assume_scheme="https", empty_value=None)
    position = forms.IntegerField(required=False, min_value=0)
    is_active = forms.NullBooleanField(required=False)

    def clean_name(self):
        val = self.cleaned_data.get('name')
        if 'name' in self.data and not val:
            raise forms.ValidationError('이름은 비워둘 수 없습니다.')
        return val

    def changes(self) -> dict:
        """요청에 실제로 들어온 필드만 골라서 반환"""
        return {k: v for k, v in self.cleaned_data.items() if k in self.data}


class CategoryForm(JsonFormMixin, forms.Form):
    name = forms.CharField(max_length=100, strip=True)
    description = forms.CharField(required=False, strip=True, empty_value=None)


class CategoryUpdateForm(JsonFormMixin, forms.Form):
    nullable = ('description',)

    name = forms.CharField(max_length=100, required=False, strip=True)
    description = forms.CharField(required=False, strip=True, empty_value=None)
    is_active = forms.NullBooleanField(required=False)

    def changes(self) -> dict:
        return {k: v for k, v in self.cleaned_data.items() if k in self.data}


class MoveForm(JsonFormMixin, forms.Form):
    nullable = ('parent_id',)

    parent_id = forms.UUIDField(required=False)


class DirectionForm(JsonFormMixin, forms.Form):
    direction = forms.ChoiceField(choices=[('up', 'up'), ('down', 'down')])


class CarouselImageForm(JsonFormMixin, forms.Form):
    image_url = forms.CharField(required=False, max_length=2000, strip=True, empty_value='')
    alt_text = forms.CharField(required=False, strip=True, empty_value='')
    caption = forms.CharField(required=False, strip=True, empty_value='')


# ─────────────────────────────────────────────
# 일괄 작업 / 검증 엔드포인트

class ReorderForm(JsonFormMixin, forms.Form):
    nullable = ('parent_id',)

    parent_id = forms.UUIDField(required=False)
    new_order = forms.JSONField()

    def clean_new_order(self):
        return _uuid_list(self.cleaned_data.get('new_order'), 'new_order')


class BulkMoveForm(JsonFormMixin, forms.Form):
    nullable = ('new_parent_id',)

    service_id = forms.UUIDField()
    new_parent_id = forms.UUIDField(required=False)
    new_position = forms.IntegerField(min_value=0)


class BulkPositionsForm(JsonFormMixin, forms.Form):
    updates = forms.JSONField()

    def clean_updates(self):
        raw = self.cleaned_data.get('updates')
        if not isinstance(raw, list):
            raise forms.ValidationError('updates 는 배열이어야 합니다.')
        out = []
        for item in raw:
            f = _PositionItemForm(item if isinstance(item, dict) else {})
            if not f.is_valid():
                raise forms.ValidationError('updates 항목은 {id, position} 이어야 합니다.')
            out.append((f.cleaned_data['id'], f.cleaned_data['position']))
        return out


class _PositionItemForm(forms.Form):
    id = forms.UUIDField()
    position = forms.IntegerField(min_value=0)


class BulkActiveForm(JsonFormMixin, forms.Form):
    service_ids = forms.JSONField()
    is_active = forms.NullBooleanField()

    def clean_service_ids(self):
        return _uuid_list(self.cleaned_data.get('service_ids'), 'service_ids')

    def clean_is_active(self):
        val = self.cleaned_data.get('is_active')
        if val is None:
            raise forms.ValidationError('is_active 가 필요합니다.')
        return val


class DuplicateForm(JsonFormMixin, forms.Form):
    nullable = ('new_parent_id',)

    service_id = forms.UUIDField()
    new_parent_id = forms.UUIDField(required=False)
    name_prefix = forms.CharField(required=False, strip=False, max_length=50)


class ValidateSlugForm(JsonFormMixin, forms.Form):
    slug = forms.CharField(max_length=200)
    exclude_id = forms.UUIDField(required=False)


class ValidateNameForm(JsonFormMixin, forms.Form):
    name = forms.CharField(max_length=200)
    exclude_id = forms.UUIDField(required=False)


class ValidateParentForm(JsonFormMixin, forms.Form):
    service_id = forms.UUIDField()
    potential_parent_id = forms.UUIDField()


def _uuid_list(raw, name):
    if not isinstance(raw, list):
        raise forms.ValidationError(f'{name} 는 배열이어야 합니다.')
    field = forms.UUIDField()
    out = []
    for v in raw:
        try:
            out.append(field.clean(v))
        except forms.ValidationError:
            raise forms.ValidationError(f'{name} 에 올바르지 않은 id 가 있습니다: {v}')
    return out
