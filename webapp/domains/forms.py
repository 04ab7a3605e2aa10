from .utils import subdomain_from_fulldomain
from .validators import DomainNameValidator
from django import forms


class DomainNameField(forms.CharField):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.validators.append(DomainNameValidator())


class UpdateNameForm(forms.Form):
    fulldomain = DomainNameField()
    domain_name = forms.CharField(required=False, max_length=253)

    def clean(self):
        fulldomain = self.cleaned_data.get("fulldomain")
        if fulldomain is not None:
            subdomain = subdomain_from_fulldomain(fulldomain)
            if subdomain is None:
                self.add_error("fulldomain", "invalid_fulldomain")
            else:
                self.cleaned_data["subdomain"] = subdomain  # synthetic field


class DnsCheckForm(forms.Form):
    domain = DomainNameField()
    fulldomain = DomainNameField()
